"""
Core request types for remotecmd.

Uses dataclasses for lightweight, typed request structures. The argument tree
keeps the ordering, repetition and nesting the wire format allows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

ARGUMENTS_TAG = "processor-arguments"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Username and password carried by every envelope."""

    username: str = ""
    password: str = ""


@dataclass(slots=True)
class ArgumentNode:
    """
    One node of a command's argument tree.

    A node is either a leaf with a text value or a block with children. Names
    may repeat among siblings and attributes keep their insertion order.

    Example:
        >>> args = ArgumentNode.root()
        >>> copy = args.add("copy")
        >>> copy.add("from", "/tmp/a.txt")
        >>> copy.add("to", "/srv")
        >>> args.child("copy").child_value("to")
        '/srv'
    """

    name: str
    value: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    children: list[ArgumentNode] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.value == "":
            self.value = None

    @classmethod
    def root(cls) -> ArgumentNode:
        """Create an empty argument section."""
        return cls(ARGUMENTS_TAG)

    def add(self, name: str, value: str | None = None, **attributes: str) -> ArgumentNode:
        """Append a child node and return it."""
        node = ArgumentNode(name, value, dict(attributes))
        self.children.append(node)
        return node

    def child(self, name: str) -> ArgumentNode | None:
        """Return the first child with the given name."""
        for node in self.children:
            if node.name == name:
                return node
        return None

    def children_named(self, name: str) -> list[ArgumentNode]:
        """Return every child with the given name, in order."""
        return [node for node in self.children if node.name == name]

    def child_value(self, name: str) -> str | None:
        """Return the value of the first child with the given name."""
        node = self.child(name)
        return node.value if node is not None else None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def __iter__(self) -> Iterator[ArgumentNode]:
        return iter(self.children)


@dataclass(frozen=True, slots=True)
class CommandEnvelope:
    """
    A request to run one named command on the receiving host.

    Attributes:
        type_id: Registered identifier of the command implementation.
        arguments: The command's argument section.
        credentials: Username and password sent along with the request.
    """

    type_id: str
    arguments: ArgumentNode = field(default_factory=ArgumentNode.root)
    credentials: Credentials = field(default_factory=Credentials)
