"""Grammar selection for tool call parsing."""

from enum import Flag, auto

from fenced_tools.exceptions import ConfigurationError


class ToolCallGrammar(Flag):
    """Set of syntaxes accepted when recovering tool calls from text.

    Members combine with ``|``. Two presets cover the known backends:

    - ``JSON``: only ```tool_call fences holding JSON
    - ``EXTENDED``: fences, ``<tool_call>`` tags and ``[func(key="value")]``
      literals
    """
    FENCE = auto()
    TAG = auto()
    CALL_LITERAL = auto()

    JSON = FENCE
    EXTENDED = FENCE | TAG | CALL_LITERAL

    @classmethod
    def from_name(cls, name: "str | ToolCallGrammar") -> "ToolCallGrammar":
        """Resolve a preset or syntax name such as ``"json"`` or ``"extended"``.

        Raises:
            ConfigurationError: If the name is unknown.
        """
        if isinstance(name, cls):
            return name
        key = str(name).strip().upper().replace("-", "_")
        try:
            return cls[key]
        except KeyError:
            known = ", ".join(m.lower() for m in cls.__members__)
            raise ConfigurationError(f"Unknown tool call grammar '{name}' (expected one of: {known})") from None

    @property
    def label(self) -> str:
        """Short name used in parser identifiers and logs."""
        for preset in ("EXTENDED", "JSON"):
            if self == type(self)[preset]:
                return preset.lower()
        syntaxes = (type(self).FENCE, type(self).TAG, type(self).CALL_LITERAL)
        return "+".join(m.name.lower() for m in syntaxes if m in self)
