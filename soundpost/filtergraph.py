"""
SoundPost v1 Filter Graph Builder

Small value types for the engine's filter-graph grammar:

    [in1][in2]name=key=value:positional[out];[out]next=...

A FilterGraph is an ordered list of labeled FilterNodes joined with ';'.
filter_chain() renders unlabeled nodes joined with ',' for simple -af use.

Invariants:
    - Nodes and graphs are immutable; add() returns a new graph
    - Serialization is defined once, here
    - Parameter order is preserved exactly as given
"""

from dataclasses import dataclass, field

from soundpost.timing import ChannelDelaySet, format_seconds


Param = tuple[str | None, str]


@dataclass(frozen=True)
class FilterNode:
    """One filter with optional input/output labels."""

    name: str
    params: tuple[Param, ...] = ()
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()

    def serialize(self) -> str:
        labels_in = "".join(f"[{label}]" for label in self.inputs)
        labels_out = "".join(f"[{label}]" for label in self.outputs)
        body = self.name
        if self.params:
            rendered = [value if key is None else f"{key}={value}" for key, value in self.params]
            body = f"{body}={':'.join(rendered)}"
        return f"{labels_in}{body}{labels_out}"

    def __str__(self) -> str:
        return self.serialize()


@dataclass(frozen=True)
class FilterGraph:
    """Ordered sequence of labeled filter nodes."""

    nodes: tuple[FilterNode, ...] = field(default_factory=tuple)

    def add(self, node: FilterNode) -> "FilterGraph":
        return FilterGraph(self.nodes + (node,))

    def serialize(self) -> str:
        return ";".join(node.serialize() for node in self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __str__(self) -> str:
        return self.serialize()


def filter_chain(*nodes: FilterNode) -> str:
    """Render unlabeled nodes as a comma-separated chain (for -af)."""
    return ",".join(node.serialize() for node in nodes)


# =============================================================================
# Node helpers
# =============================================================================


def atrim(start: float, end: float, inputs=(), outputs=()) -> FilterNode:
    return FilterNode(
        "atrim",
        (("start", format_seconds(start)), ("end", format_seconds(end))),
        tuple(inputs),
        tuple(outputs),
    )


def adelay(delays: ChannelDelaySet, inputs=(), outputs=()) -> FilterNode:
    return FilterNode("adelay", ((None, str(delays)),), tuple(inputs), tuple(outputs))


def amix(count: int, inputs=(), outputs=()) -> FilterNode:
    return FilterNode("amix", ((None, str(count)),), tuple(inputs), tuple(outputs))


def concat(count: int, inputs=(), outputs=()) -> FilterNode:
    """Audio-only concatenation of `count` segments."""
    return FilterNode(
        "concat",
        (("n", str(count)), ("v", "0"), ("a", "1")),
        tuple(inputs),
        tuple(outputs),
    )


def afade(kind: str, start: float, duration: float) -> FilterNode:
    """Fade in ('in') or out ('out') starting at `start` for `duration` seconds."""
    return FilterNode(
        "afade",
        (("t", kind), ("st", format_number(start)), ("d", format_number(duration))),
    )


def silencedetect(noise_db: float, duration: float) -> FilterNode:
    return FilterNode(
        "silencedetect",
        (("n", f"{format_number(noise_db)}dB"), ("d", format_number(duration))),
    )


def scale(width: int, height: int) -> FilterNode:
    return FilterNode("scale", ((None, str(width)), (None, str(height))))


def format_number(value: float) -> str:
    """Render 10.0 as '10' and 2.5 as '2.5'."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
