"""
LLM이 생성한 Mermaid 텍스트를 렌더링 가능한 형태로 복구.

단계:
1. 추출: 코드 펜스 내부 > 첫 다이어그램 키워드 줄부터 > 전체 텍스트
2. 이전에 붙인 스타일 블록 제거, 헤더 뒤에 붙은 내용 분리
3. 복잡도 판정: subgraph, 한 줄에 합쳐진 노드 선언, 따옴표/괄호가 중첩된 라벨
   - 복잡: 노드 선언과 연결만 모아 flowchart를 새로 작성 (너무 적으면 fallback)
   - 단순: 줄 단위 수정 (화살표 정규화, 라벨 큰따옴표 강제)
4. 헤더 보장, 5. 스타일 주입 (flowchart만), 6. 닫히지 않은 `["` 보정

sanitize_mermaid()는 어떤 입력에도 예외 없이 키워드로 시작하는 문자열을 반환하고,
자기 출력에 다시 적용해도 결과가 바뀌지 않습니다.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Tuple

from .styles import STYLE_MARKER, build_style_block
from .syntax import (
    HEADER_RE,
    Comment,
    EdgeChain,
    Header,
    NodeDecl,
    NodeRef,
    ParsedLine,
    StyleStmt,
    SubgraphStart,
    Unknown,
    parse_document,
    parse_line,
    tokenize,
)

logger = logging.getLogger(__name__)

DEFAULT_HEADER = "flowchart TD"
INDENT = "  "
MIN_RECOVERED_ELEMENTS = 3

FALLBACK_DIAGRAM = """flowchart TD
  App["Application"]
  FE["Frontend"]
  BE["Backend"]
  DB["Database"]
  App --> FE
  App --> BE
  BE --> DB"""

_FENCE = re.compile(r"```[^\n]*\n(.*?)(?:```|\Z)", re.S)
_MALFORMED_ARROW = re.compile(r"(?<![.=\-<])-(?:[ \t]*-)*[ \t]*>")
# `A[(db)]`, `A[/io/]` 같은 특수 모양은 건드리지 않음
_BARE_LABEL = re.compile(r"""(\w+)\s*\[\s*(?![(/\\])(["']?)([^"'\[\]]+?)(["']?)\s*\]""")
_LABEL_JUNK = re.compile(r"""["'\[\]]""")


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def extract_diagram(text: str) -> str:
    """펜스 블록이 있으면 그 내부, 키워드 줄이 있으면 거기서부터 끝까지."""
    fence = _FENCE.search(text)
    if fence:
        text = fence.group(1)

    lines = text.split("\n")
    for i, line in enumerate(lines):
        if HEADER_RE.match(line):
            lines = lines[i:]
            break
    return "\n".join(line for line in lines if not line.strip().startswith("```"))


def strip_style_block(lines: List[str]) -> List[str]:
    for i, line in enumerate(lines):
        if line.strip() == STYLE_MARKER:
            return lines[:i]
    return lines


def clean_label(label: Optional[str]) -> str:
    """라벨에서 따옴표와 대괄호를 모두 제거하고 공백 정리."""
    return " ".join(_LABEL_JUNK.sub("", label or "").split())


def _has_nested_label(node: NodeRef) -> bool:
    if not node.shaped:
        return False
    if not node.closed:
        return True
    label = (node.label or "").strip()
    if len(label) >= 2 and label[0] == label[-1] and label[0] in "\"'":
        label = label[1:-1]
    return bool(_LABEL_JUNK.search(label))


def _iter_nodes(parsed: Iterable[ParsedLine]) -> Iterable[NodeRef]:
    for line in parsed:
        for stmt in line.statements:
            if isinstance(stmt, NodeDecl):
                yield from stmt.nodes
            elif isinstance(stmt, EdgeChain):
                yield from stmt.nodes()


def is_complex(parsed: List[ParsedLine]) -> bool:
    """줄 단위 수정으로는 부족해서 재구성이 필요한지 판정."""
    for line in parsed:
        if any(isinstance(s, SubgraphStart) for s in line.statements):
            return True
        merged = sum(
            1 for s in line.statements
            if isinstance(s, NodeDecl) and any(n.shaped for n in s.nodes)
        )
        if merged >= 2:
            return True
    return any(_has_nested_label(node) for node in _iter_nodes(parsed))


def has_recognizable_statements(parsed: List[ParsedLine]) -> bool:
    for line in parsed:
        for stmt in line.statements:
            if isinstance(stmt, EdgeChain):
                return True
            if isinstance(stmt, NodeDecl) and any(n.shaped for n in stmt.nodes):
                return True
    return False


def reconstruct(parsed: List[ParsedLine]) -> Optional[List[str]]:
    """
    노드 선언과 연결만 남겨 flat flowchart로 재작성.

    중복 id는 그대로 다시 선언합니다. 복구된 요소(노드+연결)가
    MIN_RECOVERED_ELEMENTS보다 적으면 None.
    """
    nodes: List[Tuple[str, str]] = []
    edges: List[Tuple[str, str]] = []
    for line in parsed:
        for stmt in line.statements:
            if isinstance(stmt, NodeDecl):
                refs = list(stmt.nodes)
            elif isinstance(stmt, EdgeChain):
                refs = list(stmt.nodes())
                edges.extend(stmt.edges())
            else:
                continue
            for ref in refs:
                label = clean_label(ref.label) if ref.shaped else ""
                if label:
                    nodes.append((ref.id, label))

    if len(nodes) + len(edges) < MIN_RECOVERED_ELEMENTS:
        logger.info("Diagram reconstruction recovered %d nodes, %d edges; using fallback", len(nodes), len(edges))
        return None

    body = [f'{node_id}["{label}"]' for node_id, label in nodes]
    body.extend(f"{src} --> {dst}" for src, dst in edges)
    return [DEFAULT_HEADER] + [INDENT + line for line in body]


def _fix_arrow_token(text: str) -> str:
    def repl(m: re.Match) -> str:
        token = m.group(0)
        if re.search(r"\s", token) or token.count("-") == 1:
            return "-->"
        return token
    return _MALFORMED_ARROW.sub(repl, text)


def fix_arrows(line: str) -> str:
    """
    `--  >`, `- - >`, `->` 같은 깨진 화살표를 `-->`로.

    토크나이저가 ARROW로 읽은 부분만 고칩니다. 괄호 모양과 따옴표 안의
    라벨 텍스트(`A[Client -> API]`)는 그대로 둡니다.
    """
    parts: List[str] = []
    pos = 0
    for tok in tokenize(line):
        if tok.kind != "ARROW":
            continue
        parts.append(line[pos:tok.start])
        parts.append(_fix_arrow_token(tok.text))
        pos = tok.start + len(tok.text)
    parts.append(line[pos:])
    return "".join(parts)


def force_label_quotes(line: str) -> str:
    """`A[Label]`, `A['Label']` -> `A["Label"]`."""
    return _BARE_LABEL.sub(lambda m: f'{m.group(1)}["{m.group(3).strip()}"]', line)


def patch_flowchart(parsed: List[ParsedLine]) -> List[str]:
    """단순 경로: 헤더 아래 줄마다 화살표/라벨만 고침. 산문 줄과 중복 헤더는 버림."""
    header: Optional[str] = None
    body: List[str] = []
    for i, line in enumerate(parsed):
        first = line.statements[0] if line.statements else None
        if isinstance(first, Header):
            if i == 0:
                header = line.text
            continue
        if isinstance(first, Unknown):
            logger.debug("Dropping unparseable diagram line: %r", line.text)
            continue
        if isinstance(first, (Comment, StyleStmt)):
            body.append(INDENT + line.text)
            continue
        body.append(INDENT + force_label_quotes(fix_arrows(line.text)))
    return [header or DEFAULT_HEADER] + body


def normalize_other(parsed: List[ParsedLine]) -> List[str]:
    """flowchart가 아닌 다이어그램: 들여쓰기와 빈 줄만 정리."""
    lines = [parsed[0].text]
    lines.extend(INDENT + " ".join(line.text.split()) for line in parsed[1:])
    return lines


def close_open_labels(line: str) -> str:
    """왼쪽부터 `["`와 `"]`를 짝지어, 짝 없는 `["`가 있으면 줄 끝에 `"]`를 붙임."""
    pos = 0
    while True:
        start = line.find('["', pos)
        if start == -1:
            return line
        end = line.find('"]', start + 2)
        if end == -1:
            return line + '"]'
        pos = end + 2


def node_ids(lines: List[str]) -> List[str]:
    ids: List[str] = []
    for line in lines:
        for stmt in parse_line(line):
            if isinstance(stmt, NodeDecl):
                ids.extend(n.id for n in stmt.nodes)
            elif isinstance(stmt, EdgeChain):
                ids.extend(n.id for n in stmt.nodes())
    return list(dict.fromkeys(ids))


def _finish(lines: List[str], styled: bool) -> str:
    if styled:
        lines = lines + build_style_block(node_ids(lines[1:]), INDENT)
    return "\n".join(close_open_labels(line) for line in lines) + "\n"


def _sanitize(raw: object) -> str:
    if not isinstance(raw, str) or not raw.strip():
        return FALLBACK_RESULT

    text = extract_diagram(normalize_newlines(raw))
    parsed = parse_document(strip_style_block(text.split("\n")))
    if not parsed:
        return FALLBACK_RESULT

    first = parsed[0].statements[0] if parsed[0].statements else None
    header = first if isinstance(first, Header) else None

    if header is not None and not header.is_flowchart:
        return _finish(normalize_other(parsed), styled=False)

    if header is None and not has_recognizable_statements(parsed):
        logger.info("No diagram found in generated text; using fallback")
        return FALLBACK_RESULT

    if is_complex(parsed):
        logger.info("Complex diagram detected, rebuilding as flat flowchart")
        lines = reconstruct(parsed)
        if lines is None:
            return FALLBACK_RESULT
    else:
        if not has_recognizable_statements(parsed):
            return FALLBACK_RESULT
        lines = patch_flowchart(parsed)

    return _finish(lines, styled=True)


def sanitize_mermaid(raw: object) -> str:
    """
    생성된 다이어그램 텍스트를 복구.

    Returns:
        `flowchart`/`graph`/`sequenceDiagram` 등 키워드로 시작하고,
        짝 없는 `["`가 없으며, 줄바꿈으로 끝나는 다이어그램
    """
    try:
        return _sanitize(raw)
    except Exception:
        logger.exception("Mermaid sanitizer failed; using fallback")
        return FALLBACK_RESULT


# 스타일이 적용된 fallback (sanitize_mermaid의 고정점)
FALLBACK_RESULT = _finish(patch_flowchart(parse_document(FALLBACK_DIAGRAM.split("\n"))), styled=True)
