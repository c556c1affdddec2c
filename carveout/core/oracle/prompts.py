"""Prompt templates for the Semantic Oracle.

Four templates, one per judgment the pipeline asks for:
1. identify-bounded-contexts - group classes into bounded contexts
2. microservice-candidate-design - one bounded context → one service design
3. refactor-class - per-file move + ordered code edits
4. dependency-update - rewrite imports/references of a moved file

Templates use ``{{variable}}`` placeholders. Every template documents the
JSON it expects back; the matching pydantic schema lives in ``schemas.py``.
"""

import re
from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

MODERNIZATION_ROLE = """You are an expert software architect specializing in Domain-Driven Design
and the incremental decomposition of monolithic systems into microservices
using the strangler fig pattern. You base every judgment on the structural
evidence provided (classes, fields, methods, annotations, supertypes) and
answer ONLY with a single JSON object matching the requested schema."""

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


@dataclass(frozen=True)
class PromptTemplate:
    """A named prompt with the variables it requires."""

    id: str
    description: str
    template: str
    required_variables: Tuple[str, ...]

    def format(self, variables: Mapping[str, str]) -> str:
        missing = [v for v in self.required_variables if v not in variables]
        if missing:
            raise ValueError(f"Prompt '{self.id}' is missing variables: {missing}")
        # single pass: placeholders inside substituted values stay literal
        return _PLACEHOLDER.sub(
            lambda m: str(variables[m.group(1)]) if m.group(1) in variables else m.group(0),
            self.template,
        )


IDENTIFY_BOUNDED_CONTEXTS = PromptTemplate(
    id="identify-bounded-contexts",
    description="Group monolith classes into DDD bounded contexts",
    required_variables=("classes",),
    template=MODERNIZATION_ROLE + """

## CLASSES
The monolith declares the following classes (JSON):

{{classes}}

## YOUR TASK
Identify the bounded contexts of this system. Assign each class to at most ONE
role in at most ONE context. Use only class names that appear above.

Return exactly this JSON schema:

```json
{
  "boundedContexts": [
    {
      "name": "Ordering",
      "description": "Order placement and fulfilment",
      "aggregateRoots": ["Order"],
      "entities": ["OrderLine"],
      "valueObjects": ["Money"],
      "repositories": ["OrderRepository"],
      "services": ["OrderService"],
      "domainEvents": [
        {"name": "OrderPlaced", "aggregateRoot": "Order", "payload": ["orderId", "total"]}
      ]
    }
  ]
}
```""",
)

MICROSERVICE_CANDIDATE_DESIGN = PromptTemplate(
    id="microservice-candidate-design",
    description="Design one microservice from one bounded context",
    required_variables=("boundedContext", "otherContexts"),
    template=MODERNIZATION_ROLE + """

## BOUNDED CONTEXT
{{boundedContext}}

## OTHER BOUNDED CONTEXTS IN THIS SYSTEM
{{otherContexts}}

## YOUR TASK
Design the microservice that owns this bounded context. Name it in kebab-case
ending in "-service". List its REST API paths, and classify every interaction
as either a COMMAND (changes state) or a QUERY (reads state). List the names of
other services it depends on, using the "-service" names of the contexts above.

Return exactly this JSON schema:

```json
{
  "microservice": {
    "name": "order-service",
    "apis": [{"path": "/api/orders", "method": "POST"}],
    "events": [
      {"name": "PlaceOrder", "type": "COMMAND"},
      {"name": "GetOrder", "type": "QUERY"}
    ],
    "dependencies": ["catalog-service"]
  }
}
```""",
)

REFACTOR_CLASS = PromptTemplate(
    id="refactor-class",
    description="Plan the move of one source file into a microservice",
    required_variables=("sourceCode", "sourcePath", "targetContext"),
    template=MODERNIZATION_ROLE + """

## SOURCE FILE ({{sourcePath}})
```java
{{sourceCode}}
```

## TARGET MICROSERVICE
{{targetContext}}

## YOUR TASK
Decide where this file belongs inside the target microservice project and the
exact textual edits needed (package declaration, imports, annotations). Each
edit replaces every occurrence of "oldCode" with "newCode"; edits are applied in
the order given. "newLocation" is a path relative to the service root.

Return exactly this JSON schema:

```json
{
  "refactoring": {
    "newLocation": "src/main/java/com/shop/orders/domain/Order.java",
    "steps": [
      {"oldCode": "package com.shop.orders;", "newCode": "package com.shop.orders.domain;"}
    ]
  }
}
```""",
)

DEPENDENCY_UPDATE = PromptTemplate(
    id="dependency-update",
    description="Rewrite imports/references of a moved file",
    required_variables=("originalDependencies", "refactoredClass", "serviceContext", "movedClasses"),
    template=MODERNIZATION_ROLE + """

## CURRENT IMPORTS
{{originalDependencies}}

## MOVED CLASSES (old location -> new location)
{{movedClasses}}

## REFACTORED FILE
```java
{{refactoredClass}}
```

## SERVICE
{{serviceContext}}

## YOUR TASK
List the textual substitutions that make this file's imports and references
point at the new locations. Each change is written as "old ->> new" and is
applied verbatim.

Return exactly this JSON schema:

```json
{
  "updates": [
    {"codeChanges": ["import com.shop.orders.Order; ->> import com.shop.orders.domain.Order;"]}
  ]
}
```""",
)

PROMPT_TEMPLATES: Dict[str, PromptTemplate] = {
    t.id: t
    for t in (IDENTIFY_BOUNDED_CONTEXTS, MICROSERVICE_CANDIDATE_DESIGN, REFACTOR_CLASS, DEPENDENCY_UPDATE)
}


def render(template_id: str, variables: Mapping[str, str]) -> str:
    """Render a registered template.

    Raises:
        ValueError: On an unknown template id or missing variables
    """
    template = PROMPT_TEMPLATES.get(template_id)
    if template is None:
        raise ValueError(f"Unknown prompt template: {template_id}")
    return template.format(variables)
