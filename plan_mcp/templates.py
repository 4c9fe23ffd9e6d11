"""Markdown templates for project plan documents."""

import logging
import re
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


TEMPLATE_KINDS = ("sprint", "docref", "coderef", "opinions", "plan", "current")

# Record category -> template kind
RECORD_TEMPLATES = {
    "doc": "docref",
    "code": "coderef",
    "opinion": "opinions",
}

DEFAULT_PROJECT_NAME = "Project Plan"


def today() -> str:
    """Current UTC date as YYYY-MM-DD."""
    return datetime.now(timezone.utc).date().isoformat()


def title_case(text: str) -> str:
    """Turn a slug like ``initial_setup`` into ``Initial Setup``."""
    spaced = text.replace("_", " ")
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), spaced)


class TemplateGenerator:
    """Renders markdown for sprint, reference, opinion and root documents.

    Rendering is pure: no I/O, and identical params give identical output
    apart from the ``date`` default.
    """

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def render(self, kind: str, params: dict | None = None) -> str:
        """Render a template.

        Args:
            kind: One of TEMPLATE_KINDS
            params: Optional values; missing ones fall back to defaults

        Returns:
            Markdown text

        Raises:
            ValueError: If the kind is unknown
        """
        params = dict(params or {})
        renderers = {
            "sprint": self._sprint,
            "docref": self._docref,
            "coderef": self._coderef,
            "opinions": self._opinions,
            "plan": self._plan,
            "current": self._current,
        }
        if kind not in renderers:
            raise ValueError(
                f"Unknown template type: {kind}. Expected one of: {', '.join(TEMPLATE_KINDS)}"
            )

        text = renderers[kind](params)
        self.log.debug(f"Rendered {kind} template ({len(text)} chars)")
        return text

    def sprint(self, milestone: str, sprint: str, title: str, params: dict | None = None) -> str:
        """Render a sprint document for ``{milestone}_{sprint}``."""
        merged = {"milestone": milestone, "sprint": sprint, "title": title}
        merged.update(params or {})
        return self.render("sprint", merged)

    def record(self, category: str, target: str, content: str, date: str | None = None) -> str:
        """Render a recorded document: template body plus the user's content."""
        kind = RECORD_TEMPLATES[category]
        template = self.render(kind, {
            "target": target,
            "topic": target,
            "date": date or today(),
        })
        return f"{template}\n\n## User Content\n\n{content}"

    def project_templates(self, project_name: str | None = None, params: dict | None = None) -> dict[str, str]:
        """Render the initial project plan files.

        Returns:
            Mapping of file name to content for PLAN.md, CURRENT.md and the
            first sprint document
        """
        base = {"date": today(), "project_name": project_name or DEFAULT_PROJECT_NAME}
        base.update(params or {})

        sprint_params = dict(base)
        sprint_params.update({"milestone": "M01", "sprint": "S01", "title": "initial_setup"})

        templates = {
            "PLAN.md": self.render("plan", base),
            "CURRENT.md": self.render("current", base),
            "M01_S01.initial_setup.md": self.render("sprint", sprint_params),
        }
        self.log.info(f"Generated {len(templates)} project plan templates for {base['project_name']}")
        return templates

    def _sprint(self, params: dict) -> str:
        milestone = params.get("milestone", "M01")
        sprint = params.get("sprint", "S01")
        title = params.get("title", "task_name")
        date = params.get("date") or today()
        spaced = title.replace("_", " ")

        return f"""---
milestone: {milestone}
sprint: {sprint}
created_date: {date}
description: {spaced} execution plan
purpose: Detailed implementation plan for {spaced}
---

# {milestone}_{sprint}: {title_case(title)}

## OKR

### Objective
Define the main objective for this sprint.

### Key Results
1. **KR1**: First measurable result
2. **KR2**: Second measurable result
3. **KR3**: Third measurable result

## Execution Checklist

### Phase 1: Preparation
- [ ] Task 1
- [ ] Task 2

### Phase 2: Implementation
- [ ] Task 3
- [ ] Task 4

### Phase 3: Validation
- [ ] Task 5
- [ ] Task 6

## Key Knowledge

### Key Knowledge Point 1
Explanation of important concepts or techniques needed for this sprint.

### Key Knowledge Point 2
Additional context or background information.

## Acceptance Criteria

### Functional
1. **Criterion 1**: Specific acceptance criteria
2. **Criterion 2**: Another verification point
3. **Criterion 3**: Final validation requirement

### Quality
- Code quality standards met
- Documentation updated
- Tests passing

## Risks and Dependencies
- **Risk 1**: Potential issue and mitigation
- **Dependency 1**: External requirement

## Estimated Effort
- **Development**: X hours
- **Testing**: Y hours
- **Documentation**: Z hours
"""

    def _docref(self, params: dict) -> str:
        target = params.get("target", "document_name")
        date = params.get("date") or today()

        return f"""---
created_date: {date}
description: Reference documentation for {target}
purpose: Important reference material for project development
source_type: EXTERNAL_DOC
evidence_level: Medium (specify actual evidence level)
reference_purpose: Specify how this will be used in the project
---

# {title_case(target)} Reference

## Source Information
**Source**: Specify the source
**Researched**: {date}
**Method**: Specify tool or method used
**Evidence level**: Specify evidence level and reasoning
**Original link**: Provide original URL if available

## Why This Matters
Explain why this document is important and how it will be used.

## Core Content

### Key Section 1
Important information from the source.

### Key Section 2
Additional relevant details.

## Project Mapping
- **Phase X**: How this relates to specific project phases
- **Component Y**: Relevance to particular components
- **Decision Z**: How this influences project decisions"""

    def _coderef(self, params: dict) -> str:
        target = params.get("target", "code_component")
        date = params.get("date") or today()

        return f"""---
created_date: {date}
description: Code reference for {target}
purpose: Code examples and implementation patterns
source_type: OFFICIAL_DOC
evidence_level: High (specify actual level)
reference_purpose: Implementation guidance for project development
---

# {title_case(target)} Code Reference

## Source Information
**Source**: Official documentation or repository
**Researched**: {date}
**Method**: Tool or search used
**Evidence level**: High - from official source (adjust as needed)
**Original link**: https://example.com/docs

## Why This Matters
This code reference provides implementation patterns for:
1. Core functionality development
2. Best practice guidance
3. API usage examples

## Core Code

### Basic Implementation
```python
class ExampleClass:
    pass
```

### Advanced Usage
```python
# Advanced example
```

## Implementation Notes
1. **Pattern 1**: Description and rationale
2. **Pattern 2**: Another important pattern
3. **Best Practice**: Key considerations

## Project Mapping
- **Component A**: How this code relates to specific components
- **Phase B**: Relevance to development phases
- **Standard C**: Alignment with coding standards"""

    def _opinions(self, params: dict) -> str:
        topic = params.get("topic", "decision_topic")
        date = params.get("date") or today()

        return f"""---
created_date: {date}
description: Key decisions and observations about {topic}
purpose: Record important project decisions and reasoning
---

# {title_case(topic)}

## Decision Topic 1

### Decision: Brief decision statement
**Observation**: What was observed that led to this decision
**Reasoning**:
1. Reason 1
2. Reason 2
3. Reason 3

**Impact**: How this decision affects the project

### Decision: Another decision
**Observation**: Relevant observations
**Reasoning**:
- Supporting evidence
- Technical considerations
- User requirements

**Impact**: Project implications

## Key Observations

### Observation: Important insight
**Impact**: What this means for the project
**Response**:
1. Action item 1
2. Action item 2

## Future Considerations

### Long-term Impact
How these decisions will affect future development.

### Recommended Reviews
When and how to review these decisions."""

    def _plan(self, params: dict) -> str:
        date = params.get("date") or today()
        project_name = params.get("project_name", DEFAULT_PROJECT_NAME)

        return f"""---
created_date: {date}
description: Complete project planning document
purpose: Record project from conception to implementation planning
---

# {project_name} - Project Planning

## Original Request

### Verbatim Requirements
Record exact user requirements here.

### Requirements Analysis
Analysis and interpretation of user needs.

## Confirmed Scope

### Functional Modules
Confirmed functionality modules.

### Technical Boundaries
Technical boundaries and constraints.

## Research Findings

### Research Topic 1
**Source**: Source information
**Researched**: {date}
**Evidence level**: Evidence level

#### Key Findings
Key findings from research.

## Technology and Dependencies

### Core Stack
Selected technologies and rationale.

### Main Dependencies
Key dependencies and versions.

## Project Introduction

### Overview
High-level project description.

### Core Value
Value proposition and benefits.

### Technical Highlights
Technical highlights and innovations.

## Relation to Later Decisions
How this plan guides future decisions.
"""

    def _current(self, params: dict) -> str:
        date = params.get("date") or today()
        project_name = params.get("project_name", DEFAULT_PROJECT_NAME)

        return f"""---
last_updated: {date}
description: Current execution status and core standards
purpose: Dynamic tracking of project execution status
---

# {project_name} - Current Status

## Most Important Standards and Principles

### Core Principles
1. **Principle 1**: Description
2. **Principle 2**: Description

### Quality Standards
Quality requirements and metrics.

### User Experience Standards
User experience requirements.

## Core Workflow
Step-by-step process description.

## Execution Status

### Completed
- Completed tasks

### In Progress
- In progress tasks

### Pending
- Pending tasks

### Change History
- {date}: Project initiated

### Next Actions
Immediate next steps.

## Execution Strategy
Guidelines for project execution.
"""
