"""
Data shapes shared by the extraction engine and the extractor synthesizers.

- SampleResult: read-only view of one recorded/executed request + response
- ExtractorDescriptor: serializable configuration of one extractor
- MatchSelection: which match(es) to bind (Random / Fixed(n) / All)
- Match: captured groups of one pattern occurrence (group 0 = whole match)
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

from .constants import DEFAULT_MATCH_NUMBER, DEFAULT_TEMPLATE, TEMPLATE_GROUP_RE


class TemplateError(ValueError):
    """Raised when a template references a group the pattern does not have."""


# ============================================================
# Enums
# ============================================================

class ExtractorKind(Enum):
    """Locator type of an extractor descriptor."""
    REGEX = "regex"
    BOUNDARY = "boundary"
    CSS = "css"
    XPATH = "xpath"


class TargetSelector(Enum):
    """
    Which part of a sample is scanned.

    Values are the JMX "useHeaders" field codes so they survive a save/load
    round trip unchanged.
    """
    BODY = "false"
    BODY_UNESCAPED = "unescaped"
    BODY_AS_DOCUMENT = "as_document"
    HEADERS = "true"
    REQUEST_HEADERS = "request_headers"
    URL = "URL"
    STATUS_CODE = "code"
    STATUS_MESSAGE = "message"
    NAMED_VARIABLE = "variable"

    @classmethod
    def parse(cls, value: Union[str, "TargetSelector", None]) -> "TargetSelector":
        if isinstance(value, cls):
            return value
        if not value:
            return cls.BODY
        for member in cls:
            if member.value == value or member.name.lower() == str(value).lower():
                return member
        raise ValueError(f"Unknown target selector: '{value}'")


class Scope(Enum):
    """Which samples of a result tree are scanned."""
    ALL = "all"
    PARENT = "parent"
    CHILDREN = "children"


class SelectionMode(Enum):
    RANDOM = "random"
    FIXED = "fixed"
    ALL = "all"


# ============================================================
# Match selection
# ============================================================

@dataclass(frozen=True)
class MatchSelection:
    """
    Tagged form of the integer match number.

    The integer encoding (0 random, N>0 Nth match, <0 all matches) is only
    used at the serialization boundary via from_int/to_int.
    """
    mode: SelectionMode
    index: int = 0

    @classmethod
    def random(cls) -> "MatchSelection":
        return cls(SelectionMode.RANDOM)

    @classmethod
    def fixed(cls, index: int) -> "MatchSelection":
        if index < 1:
            raise ValueError(f"Fixed match index must be >= 1, got {index}")
        return cls(SelectionMode.FIXED, index)

    @classmethod
    def all(cls) -> "MatchSelection":
        return cls(SelectionMode.ALL)

    @classmethod
    def from_int(cls, match_number: int) -> "MatchSelection":
        if match_number == 0:
            return cls.random()
        if match_number > 0:
            return cls.fixed(match_number)
        return cls.all()

    def to_int(self) -> int:
        if self.mode is SelectionMode.RANDOM:
            return 0
        if self.mode is SelectionMode.FIXED:
            return self.index
        return -1

    @property
    def requested_count(self) -> int:
        """Number of matches the collector needs; 0 means scan everything."""
        return self.index if self.mode is SelectionMode.FIXED else 0


# ============================================================
# Match
# ============================================================

@dataclass(frozen=True)
class Match:
    groups: Tuple[str, ...]

    def group(self, index: int = 0) -> str:
        return self.groups[index]

    @property
    def group_count(self) -> int:
        """Number of groups excluding group 0."""
        return len(self.groups) - 1

    @classmethod
    def from_re(cls, match) -> "Match":
        # Unmatched optional groups bind as empty strings
        groups = (match.group(0),) + tuple(g if g is not None else "" for g in match.groups())
        return cls(groups)

    @classmethod
    def of(cls, value: str) -> "Match":
        return cls((value,))


# ============================================================
# Template
# ============================================================

TemplateFragment = Union[str, int]


def parse_template(raw_template: str) -> Tuple[TemplateFragment, ...]:
    """
    Split a template such as "id=$1$&name=$2$" into literal and group fragments.

    Returns:
        Tuple of str (literal) and int (group index) fragments, in order.
    """
    fragments: List[TemplateFragment] = []
    begin = 0
    raw_template = raw_template or ""
    for match in TEMPLATE_GROUP_RE.finditer(raw_template):
        if match.start() > begin:
            fragments.append(raw_template[begin:match.start()])
        fragments.append(int(match.group(1)))
        begin = match.end()
    if begin < len(raw_template):
        fragments.append(raw_template[begin:])
    return tuple(fragments)


def validate_template(fragments: Tuple[TemplateFragment, ...], group_count: int) -> None:
    """Raise TemplateError if a fragment references a group beyond group_count."""
    for fragment in fragments:
        if isinstance(fragment, int) and fragment > group_count:
            raise TemplateError(
                f"Template references group {fragment} but the pattern has only {group_count} group(s)"
            )


def apply_template(fragments: Tuple[TemplateFragment, ...], match: Match) -> str:
    return "".join(
        match.group(fragment) if isinstance(fragment, int) else fragment
        for fragment in fragments
    )


# ============================================================
# Sample result
# ============================================================

@dataclass
class SampleResult:
    url: str = ""
    response_headers: str = ""
    request_headers: str = ""
    response_data: bytes = b""
    data_encoding: str = "utf-8"
    response_code: str = ""
    response_message: str = ""
    content_type: str = ""
    sample_label: str = ""
    sub_results: List["SampleResult"] = field(default_factory=list)

    def response_data_as_string(self) -> str:
        try:
            return self.response_data.decode(self.data_encoding or "utf-8", errors="replace")
        except LookupError:
            return self.response_data.decode("utf-8", errors="replace")

    @classmethod
    def from_text(cls, body: str = "", encoding: str = "utf-8", **kwargs) -> "SampleResult":
        return cls(response_data=body.encode(encoding), data_encoding=encoding, **kwargs)


# ============================================================
# Extractor descriptor
# ============================================================

@dataclass
class ExtractorDescriptor:
    """
    Serializable configuration of one extractor.

    `expression` holds the regex pattern, CSS selector or XPath query depending
    on `kind`; boundary extractors use left_boundary/right_boundary instead.
    `test_name`, `parameter` and `content_type` are bookkeeping filled in by the
    synthesizers so a caller can attach the result without knowing which
    strategy produced it.
    """
    ref_name: str
    kind: ExtractorKind = ExtractorKind.REGEX
    expression: str = ""
    left_boundary: str = ""
    right_boundary: str = ""
    attribute: str = ""
    match_number: int = DEFAULT_MATCH_NUMBER
    template: str = DEFAULT_TEMPLATE
    default_value: str = ""
    default_empty_value: bool = False
    target: TargetSelector = TargetSelector.BODY
    variable_name: str = ""
    scope: Scope = Scope.ALL
    test_name: str = ""
    parameter: str = ""
    content_type: str = ""

    @property
    def selection(self) -> MatchSelection:
        return MatchSelection.from_int(self.match_number)

    @property
    def template_fragments(self) -> Tuple[TemplateFragment, ...]:
        return parse_template(self.template)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["target"] = self.target.value
        data["scope"] = self.scope.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractorDescriptor":
        values = dict(data)
        values["kind"] = ExtractorKind(values.get("kind", ExtractorKind.REGEX.value))
        values["target"] = TargetSelector.parse(values.get("target"))
        values["scope"] = Scope(values.get("scope", Scope.ALL.value))
        values["match_number"] = int(values.get("match_number", DEFAULT_MATCH_NUMBER))
        known = set(cls.__dataclass_fields__)
        return cls(**{k: v for k, v in values.items() if k in known})
