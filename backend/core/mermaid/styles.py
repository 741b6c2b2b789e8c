"""아키텍처 flowchart용 classDef 블록과 노드 분류."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

STYLE_MARKER = "%% Enhanced styling for architecture diagram"

CLASS_DEFS = (
    ("coreComponent", "fill:#f9f,stroke:#333,stroke-width:2px"),
    ("frontend", "fill:#bbf,stroke:#333,stroke-width:1px"),
    ("backend", "fill:#bfb,stroke:#333,stroke-width:1px"),
    ("dataLayer", "fill:#fbb,stroke:#333,stroke-width:1px"),
    ("utility", "fill:#fffacd,stroke:#333,stroke-width:1px"),
    ("external", "fill:#e6e6fa,stroke:#333,stroke-width:1px,stroke-dasharray: 5 5"),
    ("api", "fill:#afeeee,stroke:#333,stroke-width:1px"),
)

EXACT_ALIASES = {
    "App": "coreComponent",
    "Core": "coreComponent",
    "Main": "coreComponent",
    "FE": "frontend",
    "UI": "frontend",
    "BE": "backend",
    "API": "backend",
    "DB": "dataLayer",
}

# 순서대로 검사, 첫 번째로 맞는 분류 사용
KEYWORD_CLASSES = (
    ("frontend", ("frontend", "component", "client", "view", "page")),
    ("backend", ("backend", "server")),
    ("dataLayer", ("database", "data", "store", "model")),
    ("utility", ("util", "helper", "service")),
    ("external", ("external", "thirdparty")),
    ("api", ("endpoint", "route")),
)


def classify_node(node_id: str) -> Optional[str]:
    if node_id in EXACT_ALIASES:
        return EXACT_ALIASES[node_id]
    lowered = node_id.lower()
    for class_name, keywords in KEYWORD_CLASSES:
        if any(k in lowered for k in keywords):
            return class_name
    return None


def build_style_block(node_ids: Iterable[str], indent: str = "  ") -> List[str]:
    """
    마커 주석, classDef 목록, 존재하는 노드에 대한 class 할당 줄.

    class 줄은 CLASS_DEFS 순서, 노드는 등장 순서를 따릅니다.
    """
    members: Dict[str, List[str]] = {name: [] for name, _ in CLASS_DEFS}
    for node_id in dict.fromkeys(node_ids):
        class_name = classify_node(node_id)
        if class_name:
            members[class_name].append(node_id)

    lines = [indent + STYLE_MARKER]
    lines.extend(f"{indent}classDef {name} {style}" for name, style in CLASS_DEFS)
    lines.extend(
        f"{indent}class {','.join(ids)} {name}"
        for name, ids in members.items()
        if ids
    )
    return lines
