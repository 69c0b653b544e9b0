"""Extension registry for rule lookup during parsing and rendering.

The registry flattens an ordered set of extensions into the tables the
parser and renderer consult: block rules in order, inline rules keyed by
trigger character, node processors in order, extension render rules keyed by
node type, and the set of node types the configured parser can produce.

Thread Safety:
ExtensionRegistry is immutable after creation. Safe to share.
Use ExtensionRegistryBuilder for mutable construction.

Example:
    >>> builder = ExtensionRegistryBuilder()
    >>> builder.register(TableExtension())
    >>> builder.register(FootnotesExtension())
    >>> registry = builder.build()
    >>> registry.names
    ('table', 'footnotes')

"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from mdview.errors import ExtensionError
from mdview.extensions.protocol import SyntaxExtension
from mdview.nodes import CORE_NODE_TYPES, Node
from mdview.utils.logger import get_logger

if TYPE_CHECKING:
    from mdview.extensions.protocol import BlockRule, InlineRule, NodeProcessor, RenderRule

logger = get_logger(__name__)


class ExtensionRegistry:
    """Immutable, ordered collection of syntax extensions.

    Registration order is significant: it decides which block rule claims a
    line first, which inline rule sees a trigger character first, the order
    node processors run in, and which extension's render rule wins when two
    extensions render the same node type (the earlier one).

    Thread Safety:
        Immutable after creation. Safe to share across threads.

    """

    __slots__ = (
        "_extensions",
        "_block_rules",
        "_inline_rules",
        "_node_processors",
        "_render_rules",
        "_render_owners",
        "_produced_types",
    )

    def __init__(self, extensions: tuple[SyntaxExtension, ...]) -> None:
        """Initialize registry from an already validated extension tuple.

        Use ExtensionRegistryBuilder to create instances.
        """
        self._extensions = extensions

        block_rules: list[BlockRule] = []
        inline_rules: dict[str, list[InlineRule]] = {}
        node_processors: list[NodeProcessor] = []
        render_rules: dict[type[Node], RenderRule] = {}
        render_owners: dict[type[Node], str] = {}
        produced: set[type[Node]] = set(CORE_NODE_TYPES)

        for ext in extensions:
            block_rules.extend(ext.block_rules())
            for rule in ext.inline_rules():
                for char in rule.triggers:
                    inline_rules.setdefault(char, []).append(rule)
            node_processors.extend(ext.node_processors())
            for node_type, rule in ext.renderers().items():
                if node_type in render_rules:
                    logger.debug(
                        "Extension %r renders %s already handled by %r; keeping the earlier rule",
                        ext.name,
                        node_type.__name__,
                        render_owners[node_type],
                    )
                    continue
                render_rules[node_type] = rule
                render_owners[node_type] = ext.name
            produced.update(ext.node_types)

        self._block_rules = tuple(block_rules)
        self._inline_rules = MappingProxyType(
            {char: tuple(rules) for char, rules in inline_rules.items()}
        )
        self._node_processors = tuple(node_processors)
        self._render_rules = MappingProxyType(render_rules)
        self._render_owners = MappingProxyType(render_owners)
        self._produced_types = frozenset(produced)

    def get(self, name: str) -> SyntaxExtension | None:
        """Get a registered extension by name, or None."""
        for ext in self._extensions:
            if ext.name == name:
                return ext
        return None

    @property
    def extensions(self) -> tuple[SyntaxExtension, ...]:
        """Registered extensions in registration order."""
        return self._extensions

    @property
    def names(self) -> tuple[str, ...]:
        """Registered extension names in registration order."""
        return tuple(ext.name for ext in self._extensions)

    @property
    def block_rules(self) -> tuple[BlockRule, ...]:
        return self._block_rules

    @property
    def inline_rules(self) -> Mapping[str, tuple[InlineRule, ...]]:
        """Inline rules keyed by trigger character."""
        return self._inline_rules

    @property
    def inline_triggers(self) -> frozenset[str]:
        return frozenset(self._inline_rules)

    @property
    def node_processors(self) -> tuple[NodeProcessor, ...]:
        return self._node_processors

    @property
    def render_rules(self) -> Mapping[type[Node], RenderRule]:
        """Extension render rules keyed by node type."""
        return self._render_rules

    def render_owner(self, node_type: type[Node]) -> str | None:
        """Name of the extension whose render rule handles ``node_type``."""
        return self._render_owners.get(node_type)

    @property
    def produced_types(self) -> frozenset[type[Node]]:
        """Node types the core parser and the registered extensions produce."""
        return self._produced_types

    def __contains__(self, name: str) -> bool:
        """Support 'name in registry' syntax."""
        return self.get(name) is not None

    def __len__(self) -> int:
        """Number of registered extensions."""
        return len(self._extensions)

    def __iter__(self):
        return iter(self._extensions)

    def __repr__(self) -> str:
        return f"ExtensionRegistry({', '.join(self.names)})"


class ExtensionRegistryBuilder:
    """Mutable builder for ExtensionRegistry.

    Use this to register extensions, then call build() to create an
    immutable registry.

    Example:
        >>> builder = ExtensionRegistryBuilder()
        >>> builder.register(MarkExtension()).register(KeystrokeExtension())
        >>> registry = builder.build()

    """

    __slots__ = ("_extensions", "_names")

    def __init__(self) -> None:
        """Initialize empty builder."""
        self._extensions: list[SyntaxExtension] = []
        self._names: set[str] = set()

    def register(self, extension: SyntaxExtension) -> ExtensionRegistryBuilder:
        """Register an extension.

        Args:
            extension: Object implementing the SyntaxExtension protocol

        Returns:
            Self for chaining

        Raises:
            ExtensionError: If the object is not an extension, has no name,
                or its name is already registered
        """
        if not isinstance(extension, SyntaxExtension):
            raise ExtensionError(
                getattr(extension, "name", type(extension).__name__),
                f"{type(extension).__name__} does not implement the SyntaxExtension protocol",
            )
        if not extension.name:
            raise ExtensionError(type(extension).__name__, "extension has no name")
        if extension.name in self._names:
            raise ExtensionError(extension.name, "already registered")
        self._extensions.append(extension)
        self._names.add(extension.name)
        return self

    def register_all(self, extensions: Iterable[SyntaxExtension]) -> ExtensionRegistryBuilder:
        """Register multiple extensions in order.

        Returns:
            Self for chaining
        """
        for extension in extensions:
            self.register(extension)
        return self

    def build(self) -> ExtensionRegistry:
        """Build immutable registry from registered extensions."""
        return ExtensionRegistry(tuple(self._extensions))

    def __len__(self) -> int:
        """Number of registered extensions."""
        return len(self._extensions)
