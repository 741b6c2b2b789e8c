"""Core domain layer - HTTP 라우팅/UI 의존성 없음."""
from .models import (
    DependencyRecord,
    DependencySnapshot,
    DependencyType,
    DiagramResult,
    EnrichmentStage,
    FileItem,
    LanguageStat,
    RepoFile,
)
from .dependencies_core import extract_dependencies, normalize_repository_url
from .github_core import (
    detect_and_fetch_package_json,
    fetch_file,
    fetch_language_stats,
    list_directory,
    list_repository_files,
    search_for_file,
)
from .registry_core import fetch_package_metadata
from .logo_core import resolve_logo, resolve_logos
from .descriptions_core import (
    HttpPackageDescriber,
    LLMPackageDescriber,
    fetch_llm_descriptions,
)
from .enrichment_pipeline import analyze_dependencies, stream_dependency_snapshots
from .diagram_core import DiagramGenerator, choose_diagram_type
from .mermaid import FALLBACK_DIAGRAM, sanitize_mermaid

__all__ = [
    # Models
    "DependencyRecord",
    "DependencySnapshot",
    "DependencyType",
    "DiagramResult",
    "EnrichmentStage",
    "FileItem",
    "LanguageStat",
    "RepoFile",
    # GitHub
    "detect_and_fetch_package_json",
    "fetch_file",
    "fetch_language_stats",
    "list_directory",
    "list_repository_files",
    "search_for_file",
    # Dependencies
    "extract_dependencies",
    "normalize_repository_url",
    "fetch_package_metadata",
    "resolve_logo",
    "resolve_logos",
    "HttpPackageDescriber",
    "LLMPackageDescriber",
    "fetch_llm_descriptions",
    "analyze_dependencies",
    "stream_dependency_snapshots",
    # Diagrams
    "DiagramGenerator",
    "choose_diagram_type",
    "FALLBACK_DIAGRAM",
    "sanitize_mermaid",
]
