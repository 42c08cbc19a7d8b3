"""
FastAPI backend for the KPI Copilot.

Serves chat queries, statistics and reports over one CopilotGraph owned by
the application lifespan, and lets the host re-bind the graph data.
"""
import json
import asyncio
from typing import Any, AsyncGenerator, Dict, List, Optional
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from loguru import logger

from kpi_copilot import __version__
from kpi_copilot.config import settings
from kpi_copilot.agents.graph import CopilotGraph, create_graph
from kpi_copilot.data import load_default_graph, load_graph
from kpi_copilot.engine.graph_store import GraphStore
from kpi_copilot.reports.generator import ReportGenerator
from kpi_copilot.utils.exceptions import GraphDataError


# Request/Response models
class QueryRequest(BaseModel):
    """Request model for queries."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "query": "显示所有未达成的指标",
                "thread_id": "session_123",
            }
        }
    )

    query: str = Field(..., description="Natural language query", min_length=1, max_length=2000)
    thread_id: Optional[str] = Field(None, description="Thread ID for conversation continuity")


class QueryResponse(BaseModel):
    """Response model for queries."""
    query: str
    content: str
    nodes: List[str] = Field(default_factory=list)
    edges: List[str] = Field(default_factory=list)
    action: Optional[str] = None
    intent: Optional[str] = None
    confidence: float = 0.0
    entities: List[Dict[str, Any]] = Field(default_factory=list)
    execution_time_ms: float
    thread_id: str
    timestamp: str


class GraphPayload(BaseModel):
    """Host graph payload (flat or canvas-style nodes and edges)."""
    nodes: List[Dict[str, Any]] = Field(default_factory=list)
    edges: List[Dict[str, Any]] = Field(default_factory=list)


class GraphUpdateResponse(BaseModel):
    node_count: int
    edge_count: int
    timestamp: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    node_count: int
    edge_count: int
    timestamp: str


class StatsResponse(BaseModel):
    total: int
    by_category: Dict[str, int]
    by_status: Dict[str, int]
    achievement: Dict[str, Any]
    model_coverage: Dict[str, Any]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("[API] Starting KPI Copilot API...")

    nodes, edges = load_default_graph(app.state.graph_file)
    store = GraphStore(nodes, edges)
    app.state.copilot = create_graph(store)
    app.state.reports = ReportGenerator(store, app.state.copilot.analyzer)

    logger.info(f"[API] KPI Copilot API started with {len(nodes)} nodes, {len(edges)} edges")

    yield

    logger.info("[API] Shutting down KPI Copilot API...")


def create_app(graph_file: Optional[str] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        graph_file: JSON graph payload to serve; defaults to ``settings.graph_file``
            and then to the bundled dataset
    """
    app = FastAPI(
        title="KPI Copilot API",
        description="Chat-style analysis of the KPI traceability graph",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.graph_file = graph_file or settings.graph_file

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


def get_copilot(request: Request) -> CopilotGraph:
    copilot = getattr(request.app.state, "copilot", None)
    if copilot is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return copilot


def get_reports(request: Request) -> ReportGenerator:
    get_copilot(request)
    return request.app.state.reports


def register_routes(app: FastAPI) -> None:

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint."""
        store = get_copilot(request).store
        return HealthResponse(
            status="healthy" if store.nodes else "empty",
            version=__version__,
            node_count=len(store.nodes),
            edge_count=len(store.edges),
            timestamp=datetime.now().isoformat(),
        )

    @app.post("/query", response_model=QueryResponse)
    async def query_endpoint(body: QueryRequest, request: Request):
        """Answer a natural language query."""
        copilot = get_copilot(request)
        start_time = datetime.now()

        try:
            result = copilot.invoke(body.query, thread_id=body.thread_id)
        except Exception as e:
            logger.error(f"[API] Query failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        execution_time = (datetime.now() - start_time).total_seconds() * 1000
        response = result.get("response") or {}
        parsed = result.get("parsed_query") or {}

        return QueryResponse(
            query=body.query,
            content=response.get("content", ""),
            nodes=response.get("nodes") or [],
            edges=response.get("edges") or [],
            action=response.get("action"),
            intent=parsed.get("intent"),
            confidence=parsed.get("confidence", 0.0),
            entities=parsed.get("entities", []),
            execution_time_ms=execution_time,
            thread_id=body.thread_id or "default",
            timestamp=datetime.now().isoformat(),
        )

    @app.post("/query/stream")
    async def query_stream_endpoint(body: QueryRequest, request: Request):
        """Answer a query as Server-Sent Events, one event per pipeline node."""
        copilot = get_copilot(request)

        async def generate_events() -> AsyncGenerator[str, None]:
            try:
                yield f"data: {json.dumps({'type': 'start', 'timestamp': datetime.now().isoformat()})}\n\n"

                for event in copilot.stream(body.query, thread_id=body.thread_id):
                    for node_name, node_output in event.items():
                        event_data = {
                            "type": "node_update",
                            "node": node_name,
                            "timestamp": datetime.now().isoformat(),
                        }
                        node_output = node_output or {}
                        if node_name == "router":
                            event_data["intent"] = node_output.get("intent")
                        elif node_name == "entity_extractor":
                            event_data["entities"] = node_output.get("entities", [])
                        elif node_name == "generator":
                            event_data["response"] = node_output.get("response")

                        yield f"data: {json.dumps(event_data, ensure_ascii=False)}\n\n"
                        await asyncio.sleep(0)

                yield f"data: {json.dumps({'type': 'complete', 'timestamp': datetime.now().isoformat()})}\n\n"

            except Exception as e:
                logger.error(f"[API] Streaming error: {e}")
                yield f"data: {json.dumps({'type': 'error', 'message': str(e)})}\n\n"

        return StreamingResponse(
            generate_events(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.get("/stats", response_model=StatsResponse)
    async def stats_endpoint(request: Request):
        """Graph statistics with achievement and model coverage breakdowns."""
        copilot = get_copilot(request)
        stats = copilot.store.calculate_stats()
        return StatsResponse(
            total=stats["total"],
            by_category=stats["by_category"],
            by_status=stats["by_status"],
            achievement=copilot.analyzer.calculate_achievement_stats().to_dict(),
            model_coverage=copilot.analyzer.calculate_model_coverage_stats().to_dict(),
        )

    @app.put("/graph", response_model=GraphUpdateResponse)
    async def update_graph(payload: GraphPayload, request: Request):
        """Replace the graph data served by the copilot."""
        copilot = get_copilot(request)

        try:
            nodes, edges = load_graph(payload.model_dump())
        except GraphDataError as e:
            logger.warning(f"[API] Rejected graph payload: {e}")
            raise HTTPException(status_code=422, detail=str(e))

        copilot.rebind(nodes, edges)
        return GraphUpdateResponse(
            node_count=len(nodes),
            edge_count=len(edges),
            timestamp=datetime.now().isoformat(),
        )

    @app.get("/report")
    async def full_report(request: Request, format: str = Query("markdown", pattern="^(markdown|json)$")):
        """System analysis report as Markdown or JSON."""
        reports = get_reports(request)
        return render_report(reports, reports.generate_full_report(), format)

    @app.get("/report/{kpi_id}")
    async def kpi_report(kpi_id: str, request: Request, format: str = Query("markdown", pattern="^(markdown|json)$")):
        """Single-KPI analysis report."""
        reports = get_reports(request)
        report = reports.generate_kpi_report(kpi_id)
        if report is None:
            raise HTTPException(status_code=404, detail=f"KPI not found: {kpi_id}")
        return render_report(reports, report, format)


def render_report(reports: ReportGenerator, report, fmt: str):
    if fmt == "json":
        return report.to_dict()
    return PlainTextResponse(reports.export_to_markdown(report), media_type="text/markdown; charset=utf-8")


app = create_app()


def run_server(graph_file: Optional[str] = None):
    """Run the FastAPI server."""
    import uvicorn

    uvicorn.run(
        create_app(graph_file),
        host=settings.api_host,
        port=settings.api_port,
    )


if __name__ == "__main__":
    run_server()
