"""
Mermaid 문법의 작은 부분집합을 위한 토크나이저와 줄 단위 파서.

LLM이 만든 다이어그램을 고치기 위해 필요한 만큼만 이해합니다:
헤더, 노드 선언, 엣지 체인(`A --> B & C --> D`), subgraph/end,
스타일 문장(classDef, class, style ...), 주석. 그 외의 줄은 Unknown입니다.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

FLOWCHART_KEYWORDS = ("flowchart", "graph")
DIRECTIONS = ("TD", "TB", "BT", "RL", "LR")
STYLE_KEYWORDS = ("classDef", "class", "style", "linkStyle", "click", "direction")

HEADER_RE = re.compile(
    r"^\s*(flowchart|graph|sequenceDiagram|classDiagram|stateDiagram(?:-v2)?|erDiagram)\b(.*)$"
)

_IDENT = re.compile(r"\w+")
_ARROW = re.compile(r"<?[-=.](?:[ \t]*[-=.])*(?:[ \t]*>|[xo](?!\w))?")
_PIPE = re.compile(r"\|[^|]*\|")
_STRING = re.compile(r'"[^"]*"?')
_CLASS_SHORTHAND = re.compile(r":::\w+")
_OPENERS = "[({"
_CLOSERS = "])}"

# 라벨 텍스트 없이 엣지 텍스트를 여는 화살표 (`A -- text --> B`)
_EDGE_TEXT_OPENERS = ("--", "-.", "==")


@dataclass(frozen=True)
class Token:
    kind: str  # NODE, ARROW, PIPE, AMP, SEMI, CLASS, STRING, OTHER
    text: str
    node: Optional["NodeRef"] = None
    start: int = 0  # 줄 안에서의 시작 위치


@dataclass(frozen=True)
class NodeRef:
    """노드 참조. shape가 있으면 선언(`A["label"]`), 없으면 id만 참조."""
    id: str
    label: Optional[str] = None
    shape: Optional[str] = None
    closed: bool = True

    @property
    def shaped(self) -> bool:
        return self.shape is not None


@dataclass(frozen=True)
class Header:
    keyword: str
    direction: Optional[str] = None

    @property
    def is_flowchart(self) -> bool:
        return self.keyword in FLOWCHART_KEYWORDS

    def render(self) -> str:
        return f"{self.keyword} {self.direction}" if self.direction else self.keyword


@dataclass(frozen=True)
class NodeDecl:
    nodes: Tuple[NodeRef, ...]


@dataclass(frozen=True)
class EdgeChain:
    groups: Tuple[Tuple[NodeRef, ...], ...]
    arrows: Tuple[str, ...]

    def edges(self) -> Iterator[Tuple[str, str]]:
        """`&`를 펼치고 체인을 쪼갠 (from, to) 쌍."""
        for left, right in zip(self.groups, self.groups[1:]):
            for a in left:
                for b in right:
                    yield a.id, b.id

    def nodes(self) -> Iterator[NodeRef]:
        for group in self.groups:
            yield from group


@dataclass(frozen=True)
class SubgraphStart:
    title: str


@dataclass(frozen=True)
class SubgraphEnd:
    pass


@dataclass(frozen=True)
class StyleStmt:
    text: str


@dataclass(frozen=True)
class Comment:
    text: str


@dataclass(frozen=True)
class Unknown:
    text: str


Statement = Union[Header, NodeDecl, EdgeChain, SubgraphStart, SubgraphEnd, StyleStmt, Comment, Unknown]


@dataclass(frozen=True)
class ParsedLine:
    text: str
    statements: Tuple[Statement, ...]


def scan_shape(line: str, start: int) -> Tuple[str, int, bool]:
    """
    line[start]의 여는 괄호부터 짝이 맞는 닫는 괄호까지 읽음.

    큰따옴표 안의 괄호는 무시합니다.

    Returns:
        (괄호 안 내용, 다음 위치, 닫혔는지 여부)
    """
    depth = 0
    in_quote = False
    for j in range(start, len(line)):
        c = line[j]
        if in_quote:
            if c == '"':
                in_quote = False
        elif c == '"':
            in_quote = True
        elif c in _OPENERS:
            depth += 1
        elif c in _CLOSERS:
            depth -= 1
            if depth == 0:
                return line[start + 1:j], j + 1, True
    return line[start + 1:], len(line), False


def _valid_arrow(text: str) -> bool:
    compact = re.sub(r"\s", "", text)
    return ("-" in compact or "=" in compact) and (compact.endswith(">") or len(compact) >= 2)


def tokenize(line: str) -> List[Token]:
    tokens: List[Token] = []
    i, n = 0, len(line)
    while i < n:
        c = line[i]
        if c.isspace():
            i += 1
            continue

        m = _IDENT.match(line, i)
        if m:
            end = m.end()
            k = end
            while k < n and line[k] in " \t":
                k += 1
            if k < n and line[k] in _OPENERS:
                label, end, closed = scan_shape(line, k)
                node = NodeRef(m.group(), label, line[k], closed)
            else:
                node = NodeRef(m.group())
            tokens.append(Token("NODE", line[i:end], node, i))
            i = end
            continue

        if c in _OPENERS:
            _, end, _ = scan_shape(line, i)
            tokens.append(Token("OTHER", line[i:end], start=i))
            i = end
            continue

        m = _ARROW.match(line, i)
        if m and _valid_arrow(m.group()):
            tokens.append(Token("ARROW", m.group(), start=i))
            i = m.end()
            continue

        if line.startswith(":::", i):
            m = _CLASS_SHORTHAND.match(line, i)
            if m:
                tokens.append(Token("CLASS", m.group(), start=i))
                i = m.end()
                continue

        if c == "|":
            m = _PIPE.match(line, i)
            if m:
                tokens.append(Token("PIPE", m.group(), start=i))
                i = m.end()
                continue
        elif c == '"':
            m = _STRING.match(line, i)
            tokens.append(Token("STRING", m.group(), start=i))
            i = m.end()
            continue
        elif c == "&":
            tokens.append(Token("AMP", c, start=i))
            i += 1
            continue
        elif c == ";":
            tokens.append(Token("SEMI", c, start=i))
            i += 1
            continue

        tokens.append(Token("OTHER", c, start=i))
        i += 1
    return tokens


class _ChainBuilder:
    """토큰 열을 NodeDecl / EdgeChain 문장으로 묶음."""

    def __init__(self) -> None:
        self.statements: List[Statement] = []
        self.stray = False
        self._reset()

    def _reset(self) -> None:
        self.groups: List[List[NodeRef]] = [[]]
        self.arrows: List[str] = []
        self.expect_node = True

    def node(self, node: NodeRef) -> None:
        if not self.expect_node:
            self.flush()
        self.groups[-1].append(node)
        self.expect_node = False

    def arrow(self, text: str) -> None:
        if not self.groups[-1]:
            self.stray = True
            return
        self.arrows.append(text.strip())
        self.groups.append([])
        self.expect_node = True

    def amp(self) -> None:
        if not self.groups[-1]:
            self.stray = True
            return
        self.expect_node = True

    def flush(self) -> None:
        groups = [g for g in self.groups]
        arrows = list(self.arrows)
        if groups and not groups[-1]:
            groups.pop()
            arrows = arrows[:max(len(groups) - 1, 0)]
        if len(groups) >= 2:
            self.statements.append(EdgeChain(tuple(tuple(g) for g in groups), tuple(arrows)))
        elif groups and groups[0]:
            self.statements.append(NodeDecl(tuple(groups[0])))
        self._reset()


def _parse_tokens(tokens: List[Token]) -> Tuple[List[Statement], bool]:
    builder = _ChainBuilder()
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if tok.kind == "NODE":
            builder.node(tok.node)
        elif tok.kind == "ARROW":
            arrow = tok.text
            if re.sub(r"\s", "", arrow) in _EDGE_TEXT_OPENERS:
                j = i + 1
                while j < len(tokens) and tokens[j].kind in ("NODE", "STRING") and not (
                    tokens[j].node and tokens[j].node.shaped
                ):
                    j += 1
                if j > i + 1 and j < len(tokens) and tokens[j].kind == "ARROW":
                    arrow = tokens[j].text
                    i = j
            builder.arrow(arrow)
        elif tok.kind == "AMP":
            builder.amp()
        elif tok.kind == "SEMI":
            builder.flush()
        elif tok.kind in ("PIPE", "CLASS"):
            pass
        else:
            builder.stray = True
        i += 1
    builder.flush()
    return builder.statements, builder.stray


def _looks_like_prose(tokens: List[Token], stray: bool) -> bool:
    if any(t.kind == "ARROW" for t in tokens):
        return False
    if any(t.node is not None and t.node.shaped for t in tokens):
        return False
    bare = sum(1 for t in tokens if t.kind == "NODE")
    return stray or bare >= 2


def parse_line(text: str) -> List[Statement]:
    """헤더가 아닌 한 줄을 문장 목록으로 파싱."""
    s = text.strip()
    if not s:
        return []
    if s.startswith("%%"):
        return [Comment(s)]

    first = re.split(r"[\s;]", s, maxsplit=1)[0]
    if first == "subgraph":
        return [SubgraphStart(s[len("subgraph"):].strip())]
    if first == "end":
        return [SubgraphEnd()]
    if first in STYLE_KEYWORDS:
        return [StyleStmt(s)]

    tokens = tokenize(s)
    statements, stray = _parse_tokens(tokens)
    if not statements or _looks_like_prose(tokens, stray):
        return [Unknown(s)]
    return statements


def parse_header(text: str) -> Optional[Tuple[Header, str]]:
    """
    헤더 줄이면 (Header, 같은 줄에 붙어 있던 나머지 내용)을 반환.

    `graph TD A[Hello] B[World]` -> (Header("graph", "TD"), "A[Hello] B[World]")
    """
    m = HEADER_RE.match(text)
    if not m:
        return None
    keyword, rest = m.group(1), m.group(2).strip()
    if keyword not in FLOWCHART_KEYWORDS:
        return Header(keyword), rest

    direction = None
    parts = rest.split(None, 1)
    if parts and parts[0].rstrip(";") in DIRECTIONS:
        direction = parts[0].rstrip(";")
        rest = parts[1] if len(parts) > 1 else ""
    return Header(keyword, direction), rest.strip()


def parse_document(lines: List[str]) -> List[ParsedLine]:
    """
    줄 목록을 ParsedLine 목록으로 변환.

    헤더 줄 뒤에 붙은 내용은 별도의 줄로 분리됩니다.
    """
    parsed: List[ParsedLine] = []
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        header = parse_header(stripped)
        if header is not None:
            head, rest = header
            parsed.append(ParsedLine(head.render(), (head,)))
            if rest:
                parsed.append(ParsedLine(rest, tuple(parse_line(rest))))
            continue
        parsed.append(ParsedLine(stripped, tuple(parse_line(stripped))))
    return parsed
