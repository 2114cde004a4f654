"""Schema-driven tree builder for OFX element events.

This module reconstructs the document hierarchy from the flat event stream
produced by the tokenizer. A stack of open containers tracks where each event
lands; leaf and unknown tags are remembered per container so that close tags
for elements which never received an explicit close can be absorbed, while a
close tag that belongs to no open element is a hard mismatch.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from ofx2json.decoding import parse_bool, parse_datetime, parse_number
from ofx2json.schema import SchemaNode, SerializeMode, ValueKind
from ofx2json.shared import (
    CloseMismatchError,
    DiagnosticEntry,
    DiagnosticSeverity,
    LeafDecodeError,
    UnbalancedStackError,
    get_logger,
)
from ofx2json.tokenization import ElementEvent

JSONValue = Union[Dict[str, Any], List[Any], str, float, bool]


def json_key(tag: str) -> str:
    """Output member key for a source tag name."""
    return tag.lower()


def attach(target: Union[Dict[str, Any], List[Any]], key: str, value: Any) -> None:
    """Attach ``value`` under ``key`` to an object, or as ``{key: value}`` to an array."""
    if isinstance(target, list):
        target.append({key: value})
    else:
        target[key] = value


@dataclass(eq=False)
class OpenContainer:
    """One frame of the container stack.

    ``value`` is a dict for object-like modes and a list for ``ARRAY``. A
    ``SUPPRESSED`` container shares its enclosing container's value, so its
    members land directly in the parent.
    """

    name: str
    schema: SchemaNode
    value: Union[Dict[str, Any], List[Any]]
    pending: List[Tuple[str, str]] = field(default_factory=list)

    @classmethod
    def open(
        cls,
        name: str,
        schema: SchemaNode,
        enclosing: Union[Dict[str, Any], List[Any]]
    ) -> "OpenContainer":
        """Create a frame whose storage follows the schema's serialize mode."""
        value: Union[Dict[str, Any], List[Any]]
        if schema.serialize is SerializeMode.SUPPRESSED:
            value = enclosing
        elif schema.serialize is SerializeMode.ARRAY:
            value = []
        else:
            value = {}
        return cls(name, schema, value)

    def record(self, tag: str, text: str) -> None:
        """Remember a leaf or unknown tag that may later receive a close."""
        self.pending.append((tag, text))

    def resolve_close(self, close_name: str) -> Tuple[bool, bool]:
        """Resolve a close tag against this container.

        Pending tags are discarded from the most recent backward until one
        named ``close_name`` is removed or none remain. The container itself
        is closed only when nothing is left pending and ``close_name`` is its
        own name.

        Returns:
            ``(accepted, done)``: whether the close was consumed, and whether
            it closed this container
        """
        found = False
        while self.pending and not found:
            tag, _ = self.pending.pop()
            found = tag == close_name
        if not self.pending and close_name == self.name:
            return True, True
        return found, False

    def fold_into(self, parent: Union[Dict[str, Any], List[Any]]) -> None:
        """Attach this container's value to ``parent`` per its serialize mode."""
        mode = self.schema.serialize
        key = json_key(self.name)
        if mode is SerializeMode.SUPPRESSED:
            return
        if mode in (SerializeMode.MERGED_OBJECT, SerializeMode.ARRAY):
            attach(parent, key, self.value)
            return

        element = self.value
        if mode is SerializeMode.NAMED_ARRAY_ELEMENT:
            element = {key: self.value}
        if isinstance(parent, list):
            parent.append(element)
        else:
            parent.setdefault(key, []).append(element)


class TreeBuilder:
    """Builds the output tree from element events against a schema.

    Usage::

        builder = TreeBuilder(schema, root_name="OFX")
        builder.push_root()
        for event in tokenizer.events():
            builder.handle_event(event)
        tree = builder.finish()
    """

    def __init__(
        self,
        schema: SchemaNode,
        root_name: str = "OFX",
        quiet: bool = False,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize tree builder.

        Args:
            schema: Root schema node; never mutated
            root_name: Tag name of the root container
            quiet: Do not record or log unrecognized-element notices
            correlation_id: Optional correlation ID for request tracking
        """
        self.schema = schema
        self.root_name = root_name
        self.quiet = quiet
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "tree_builder", quiet)

        self.document: Dict[str, Any] = {}
        self.stack: List[OpenContainer] = []
        self.diagnostics: List[DiagnosticEntry] = []

        self.events_processed = 0
        self.containers_opened = 0
        self.unrecognized_elements = 0

    @property
    def depth(self) -> int:
        """Number of open containers."""
        return len(self.stack)

    @property
    def current(self) -> OpenContainer:
        """Innermost open container."""
        return self.stack[-1]

    def _enclosing_value(self) -> Union[Dict[str, Any], List[Any]]:
        return self.stack[-1].value if self.stack else self.document

    def _push(self, name: str, schema: SchemaNode) -> OpenContainer:
        container = OpenContainer.open(name, schema, self._enclosing_value())
        self.stack.append(container)
        self.containers_opened += 1
        self.logger.debug(
            "Opened container",
            extra={"container": name, "mode": schema.serialize.value, "depth": self.depth}
        )
        return container

    def _pop(self) -> OpenContainer:
        container = self.stack.pop()
        container.fold_into(self._enclosing_value())
        self.logger.debug(
            "Closed container",
            extra={"container": container.name, "depth": self.depth}
        )
        return container

    def push_root(self) -> OpenContainer:
        """Push the root container seeded from the top-level schema node."""
        return self._push(self.root_name, self.schema)

    def handle_event(self, event: ElementEvent) -> None:
        """Dispatch one tokenizer event.

        Raises:
            CloseMismatchError: if a close tag cannot be resolved
            LeafDecodeError: if a number or boolean leaf does not decode
            UnbalancedStackError: if an element opens after the root has closed
        """
        self.events_processed += 1
        if event.is_close:
            self.handle_close(event.name)
        else:
            self.handle_open(event.name, event.text, event.offset)

    def handle_open(self, tag: str, text: str = "", offset: Optional[int] = None) -> None:
        """Apply the open rule for ``tag`` against the current container."""
        if not self.stack:
            raise UnbalancedStackError(
                f"element <{tag}> found after the root container closed", 0
            )
        container = self.current
        child = container.schema.children.get(tag)
        if child is not None:
            self._push(tag, child)
            return

        kind = container.schema.leaves.get(tag)
        if kind is not None:
            attach(container.value, json_key(tag), self.decode_leaf(tag, kind, text))
        else:
            self._report_unrecognized(container, tag, text, offset)
        container.record(tag, text)

    def handle_close(self, tag: str) -> None:
        """Resolve a close tag against the current container."""
        if not self.stack:
            raise CloseMismatchError(tag, None)
        container = self.current
        accepted, done = container.resolve_close(tag)
        if not accepted:
            raise CloseMismatchError(tag, container.name)
        if done:
            self._pop()

    def decode_leaf(self, tag: str, kind: ValueKind, text: str) -> JSONValue:
        """Decode leaf text per its declared kind.

        Datetimes that fail to decode are kept as the raw text; numbers and
        booleans that fail to decode raise ``LeafDecodeError``.
        """
        if kind is ValueKind.STRING:
            return text
        if kind is ValueKind.DATETIME:
            try:
                return parse_datetime(text).isoformat()
            except LeafDecodeError:
                self.logger.debug(
                    "Datetime kept as text", extra={"tag": tag, "text": text}
                )
                return text
        try:
            if kind is ValueKind.NUMBER:
                return parse_number(text)
            return parse_bool(text)
        except LeafDecodeError as e:
            raise LeafDecodeError(e.kind, text, tag) from e

    def _report_unrecognized(
        self,
        container: OpenContainer,
        tag: str,
        text: str,
        offset: Optional[int]
    ) -> None:
        self.unrecognized_elements += 1
        if self.quiet:
            return
        message = f"unrecognized element <{tag}> under container <{container.name}>"
        self.diagnostics.append(
            DiagnosticEntry(
                severity=DiagnosticSeverity.WARNING,
                message=message,
                component="tree_builder",
                position={"offset": offset} if offset is not None else None,
                details={"tag": tag, "text": text, "container": container.name},
                correlation_id=self.correlation_id,
            )
        )
        self.logger.warning(message, extra={"tag": tag, "text": text})

    def finish(self) -> Dict[str, Any]:
        """Close the root at end of input and return the output tree.

        The root close tag stops tokenization, so the root is still open
        here; it is resolved as though its own close had been read.

        Raises:
            UnbalancedStackError: if the root does not close cleanly or other
                containers remain open
        """
        if self.depth == 1:
            root = self.current
            _, done = root.resolve_close(root.name)
            if not done:
                raise UnbalancedStackError(
                    f"root container <{root.name}> did not close cleanly", self.depth
                )
            self._pop()

        if self.stack:
            names = ", ".join(f"<{c.name}>" for c in self.stack)
            raise UnbalancedStackError(
                f"Stack not empty: {self.depth} containers still open ({names})",
                self.depth,
            )
        return self.document
