"""Exception taxonomy.

Layout Engine operations never raise for unknown or wrong-kind ids; these
exceptions cover malformed documents, rejected templates and transport
failures.
"""


class LiteTermError(Exception):
    """Base class for all liteterm errors."""


class LayoutError(LiteTermError):
    """A layout document could not be decoded."""


class InvalidLayoutError(LayoutError):
    """A layout tree violates the structural invariants."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("invalid layout: " + "; ".join(problems))


class UnknownTemplateError(LayoutError, KeyError):
    """No template is registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown template: {name}")

    def __str__(self) -> str:
        return f"unknown template: {self.name}"


class TransportError(LiteTermError):
    """The terminal byte channel failed."""


class ChannelClosed(TransportError):
    """The peer closed the channel in an orderly way."""


class FrameError(TransportError):
    """A frame could not be encoded."""


class FileServiceError(LiteTermError):
    """The external file service could not satisfy a request."""
