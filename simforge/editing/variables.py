"""
State variable references.

Prompt text refers to simulation state with Jinja-style tokens that the
runner resolves at run time:

    {{ meta.round }}
    {{ public_information.price }}
    {{ private_information.balance }}

Partials are pulled in with ``{% include "_partials/<name>.jinja2" %}``.

This module formats those tokens for the editors and, separately, offers a
lint pass that reports references to undeclared fields. The compiler does
not run the lint: prompts are exported as written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from jinja2 import Environment, TemplateSyntaxError, nodes
from jinja2 import meta as jinja_meta

from simforge.utils.logging import get_logger

if TYPE_CHECKING:
    from simforge.core.models.project import Project, State, StateField

logger = get_logger("editing.variables")

PARTIALS_DIR = "_partials"
PARTIAL_SUFFIX = ".jinja2"


class StateNamespace(str, Enum):
    """The three state namespaces a prompt can reference."""

    META = "meta"
    PUBLIC = "public"
    PRIVATE = "private"

    @property
    def token_root(self) -> str:
        return _TOKEN_ROOTS[self]

    @property
    def state_attr(self) -> str:
        return _STATE_ATTRS[self]

    @property
    def label(self) -> str:
        return f"{self.value} Information"


_TOKEN_ROOTS = {
    StateNamespace.META: "meta",
    StateNamespace.PUBLIC: "public_information",
    StateNamespace.PRIVATE: "private_information",
}

_STATE_ATTRS = {
    StateNamespace.META: "meta_information",
    StateNamespace.PUBLIC: "public_information",
    StateNamespace.PRIVATE: "private_information",
}

_ROOT_TO_NAMESPACE = {root: ns for ns, root in _TOKEN_ROOTS.items()}


# ============================================================================
# Token formatting
# ============================================================================


def variable_token(namespace: StateNamespace | str, name: str) -> str:
    """Format the reference token for a state field.

    Args:
        namespace: ``meta``, ``public`` or ``private``
        name: Field name within the namespace

    Returns:
        e.g. ``{{ public_information.price }}``

    Raises:
        ValueError: If the name is empty or the namespace unknown
    """
    if not name:
        raise ValueError("State field name must not be empty")
    namespace = StateNamespace(namespace)
    return "{{ " + f"{namespace.token_root}.{name}" + " }}"


def partial_include(name: str) -> str:
    """Include statement that pulls a prompt partial into a prompt."""
    return '{% include "' + f"{PARTIALS_DIR}/{name}{PARTIAL_SUFFIX}" + '" %}'


@dataclass(frozen=True)
class VariableItem:
    name: str
    token: str

    @property
    def hint(self) -> str:
        return f"Click to insert {self.token}"


@dataclass(frozen=True)
class VariableGroup:
    namespace: StateNamespace
    items: tuple[VariableItem, ...]

    @property
    def label(self) -> str:
        return self.namespace.label


def insertable_variables(state: "State | None") -> list[VariableGroup]:
    """Group a state schema into insertable tokens, meta/public/private.

    Namespaces without fields are left out; no state means no groups.
    """
    if state is None:
        return []

    groups = []
    for namespace in StateNamespace:
        fields: list[StateField] = getattr(state, namespace.state_attr)
        if not fields:
            continue
        groups.append(
            VariableGroup(
                namespace=namespace,
                items=tuple(
                    VariableItem(name=f.name, token=variable_token(namespace, f.name))
                    for f in fields
                ),
            )
        )
    return groups


# ============================================================================
# Reference discovery
# ============================================================================


_env = Environment()


@dataclass(frozen=True)
class VariableReference:
    namespace: StateNamespace
    field: str

    @property
    def token(self) -> str:
        return variable_token(self.namespace, self.field)


@dataclass
class PromptReferences:
    """Everything a piece of prompt text points at."""

    variables: list[VariableReference] = field(default_factory=list)
    partials: list[str] = field(default_factory=list)


def find_references(text: str) -> PromptReferences:
    """Parse prompt text and collect state and partial references.

    Raises:
        jinja2.TemplateSyntaxError: If the text is not a valid template
    """
    ast = _env.parse(text)
    refs = PromptReferences()

    for node in ast.find_all(nodes.Getattr):
        if not isinstance(node.node, nodes.Name):
            continue
        namespace = _ROOT_TO_NAMESPACE.get(node.node.name)
        if namespace is None:
            continue
        ref = VariableReference(namespace=namespace, field=node.attr)
        if ref not in refs.variables:
            refs.variables.append(ref)

    for template_name in jinja_meta.find_referenced_templates(ast):
        if template_name is None:
            continue  # dynamic include, nothing to check
        name = _partial_name(template_name)
        if name not in refs.partials:
            refs.partials.append(name)

    return refs


def _partial_name(template_name: str) -> str:
    name = template_name
    if name.startswith(f"{PARTIALS_DIR}/"):
        name = name[len(PARTIALS_DIR) + 1:]
    if name.endswith(PARTIAL_SUFFIX):
        name = name[: -len(PARTIAL_SUFFIX)]
    return name


# ============================================================================
# Lint
# ============================================================================


@dataclass(frozen=True)
class ReferenceIssue:
    location: str
    kind: str  # "undeclared_field" | "unknown_partial" | "syntax"
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"


def _iter_prompt_texts(project: "Project"):
    for partial in project.prompt_partials:
        yield f"partial '{partial.name}'", partial.content
    for role in project.agent_roles:
        for slot, text in role.prompts.items():
            yield f"role {role.role_id} ({role.name}) / {slot}", text


def check_references(project: "Project") -> list[ReferenceIssue]:
    """Report prompt references that do not resolve against the project.

    Covers undeclared state fields, includes of partials that do not
    exist, and prompt text that does not parse as a template.
    """
    declared = {
        namespace: {f.name for f in getattr(project.state, namespace.state_attr)}
        for namespace in StateNamespace
    }
    partial_names = {p.name for p in project.prompt_partials}

    issues: list[ReferenceIssue] = []
    for location, text in _iter_prompt_texts(project):
        try:
            refs = find_references(text)
        except TemplateSyntaxError as e:
            issues.append(
                ReferenceIssue(location, "syntax", f"line {e.lineno}: {e.message}")
            )
            continue

        for ref in refs.variables:
            if ref.field not in declared[ref.namespace]:
                issues.append(
                    ReferenceIssue(
                        location,
                        "undeclared_field",
                        f"{ref.token} is not declared in {ref.namespace.label}",
                    )
                )
        for name in refs.partials:
            if name not in partial_names:
                issues.append(
                    ReferenceIssue(location, "unknown_partial", f"partial '{name}' does not exist")
                )

    if issues:
        logger.debug(f"Reference check found {len(issues)} issue(s) in '{project.name}'")
    return issues
