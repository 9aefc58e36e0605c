"""FastAPI web application for modmap."""

from functools import lru_cache
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from modmap.config import get_settings
from modmap.exceptions import NoWorkspaceError
from modmap.graph import GraphFilter, analysis_summary, filter_graph
from modmap.manifest import FileManifestSource
from modmap.models import BatchPolicy, DependencyGraph, ScanOptions
from modmap.registry import NpmRegistryClient
from modmap.scanner import DependencyScanner
from modmap.serialize import graph_to_dict

app = FastAPI(
    title="modmap",
    description="Dependency graphs with version conflicts and outdated packages",
    version="0.1.0",
)


class ScanRequest(BaseModel):
    """Request model for scanning workspaces."""
    roots: list[str] = Field(min_length=1)
    max_depth: Optional[int] = None
    include_dev_dependencies: bool = True
    include_peer_dependencies: bool = True
    include_optional_dependencies: bool = True
    enable_version_checking: bool = True
    search_term: str = ""


class AnalysisResponse(BaseModel):
    """Response model for dependency analysis."""
    total_packages: int
    total_dependencies: int
    outdated: int
    conflicts: int
    vulnerable: int
    all_up_to_date: bool
    workspace_roots: list[str]


@lru_cache
def get_registry() -> NpmRegistryClient:
    """Registry client shared by every request."""
    return NpmRegistryClient.from_settings(get_settings())


async def _scan(request: ScanRequest) -> DependencyGraph:
    settings = get_settings()
    options = ScanOptions.from_settings(settings)
    if request.max_depth is not None:
        options.max_depth = request.max_depth
    options.include_dev_dependencies = request.include_dev_dependencies
    options.include_peer_dependencies = request.include_peer_dependencies
    options.include_optional_dependencies = request.include_optional_dependencies
    options.enable_version_checking = request.enable_version_checking

    scanner = DependencyScanner(
        FileManifestSource(request.roots),
        registry=get_registry(),
        policy=BatchPolicy(batch_size=settings.batch_size, delay=settings.batch_delay),
    )
    return await scanner.scan_workspace(options)


@app.get("/api/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


@app.post("/api/scan")
async def scan_dependencies(request: ScanRequest):
    """Scan workspace roots and return the dependency graph."""
    try:
        graph = await _scan(request)
        if request.search_term:
            deepest = max((node.depth for node in graph.nodes), default=0)
            graph = filter_graph(
                graph, GraphFilter(max_depth=deepest, search_term=request.search_term)
            )
        return graph_to_dict(graph)

    except NoWorkspaceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        # Re-raise HTTP exceptions (don't convert to 500)
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error scanning dependencies: {str(e)}")


@app.post("/api/analyze", response_model=AnalysisResponse)
async def analyze_dependencies(request: ScanRequest):
    """Scan workspace roots and summarise their issues."""
    try:
        graph = await _scan(request)
        return AnalysisResponse(
            **analysis_summary(graph),
            workspace_roots=graph.metadata.workspace_roots,
        )

    except NoWorkspaceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error analyzing dependencies: {str(e)}")
