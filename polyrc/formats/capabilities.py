"""What each dialect can express natively, and what it assumes otherwise."""

from __future__ import annotations

from dataclasses import dataclass

from polyrc.ir.models import Activation, Rule, Scope
from polyrc.models import Format

ALL_SCOPES = frozenset(Scope)
ALL_ACTIVATIONS = frozenset(Activation)


@dataclass(frozen=True)
class DialectCapabilities:
    scopes: frozenset[Scope]
    activations: frozenset[Activation]
    globs: bool
    description: bool
    name: bool
    default_scope: Scope = Scope.PROJECT
    default_activation: Activation = Activation.ALWAYS

    def unrepresented_fields(self, rule: Rule) -> list[str]:
        missing: list[str] = []
        if rule.scope not in self.scopes:
            missing.append("scope")
        if rule.activation not in self.activations:
            missing.append("activation")
        if rule.globs and not self.globs:
            missing.append("globs")
        if rule.description and not self.description:
            missing.append("description")
        if rule.name and not self.name:
            missing.append("name")
        return missing


CAPABILITIES: dict[Format, DialectCapabilities] = {
    # frontmatter has no scope key
    Format.CURSOR: DialectCapabilities(
        scopes=frozenset({Scope.PROJECT}),
        activations=ALL_ACTIVATIONS,
        globs=True,
        description=True,
        name=True,
    ),
    Format.WINDSURF: DialectCapabilities(
        scopes=frozenset({Scope.USER, Scope.PROJECT}),
        activations=ALL_ACTIVATIONS,
        globs=True,
        description=True,
        name=True,
    ),
    # instruction files are path-scoped; the main file keeps section metadata
    Format.COPILOT: DialectCapabilities(
        scopes=ALL_SCOPES,
        activations=ALL_ACTIVATIONS,
        globs=True,
        description=True,
        name=True,
    ),
    Format.CLAUDE: DialectCapabilities(
        scopes=ALL_SCOPES,
        activations=ALL_ACTIVATIONS,
        globs=True,
        description=True,
        name=True,
    ),
    Format.GEMINI: DialectCapabilities(
        scopes=ALL_SCOPES,
        activations=ALL_ACTIVATIONS,
        globs=True,
        description=True,
        name=True,
    ),
    # plain markdown files, no frontmatter
    Format.ANTIGRAVITY: DialectCapabilities(
        scopes=frozenset({Scope.USER, Scope.PROJECT}),
        activations=frozenset({Activation.ALWAYS}),
        globs=False,
        description=False,
        name=True,
    ),
}


def capabilities_for(fmt: Format) -> DialectCapabilities:
    return CAPABILITIES[fmt]
