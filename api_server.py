from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Body, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import List, Dict, Any, Optional
import uvicorn

from parsley.config import settings
from parsley.exceptions import ParsleyError
from parsley.graph import create_graph_client
from parsley.handlers import DomainResolver, PageViewHandler, SearchHandler
from parsley.utils.logger import app_logger


logger = app_logger.bind(component="api_server")


class CreatePageViewResponse(BaseModel):
    id: str
    predecessor: Optional[str] = None
    parent: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class SearchResponse(BaseModel):
    results: List[Dict[str, Any]]


def _http_error(e: Exception, action: str) -> HTTPException:
    if isinstance(e, ParsleyError):
        logger.warning(f"Error {action}: {e}")
        return HTTPException(status_code=e.status_code, detail=str(e))
    logger.exception(f"Unexpected error {action}: {e}")
    return HTTPException(status_code=500, detail=str(e))


def create_app(graph_client=None) -> FastAPI:
    """Build the API around ``graph_client`` (the configured backend by default)."""
    graph = graph_client if graph_client is not None else create_graph_client()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        graph.close()

    app = FastAPI(title="Parsley Page View API", version="1.0.0", lifespan=lifespan)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Initialize components
    domain_resolver = DomainResolver(graph)
    page_view_handler = PageViewHandler(graph, domain_resolver)
    search_handler = SearchHandler(graph)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        """Unparseable query or body parameters are client errors."""
        fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
        logger.warning(f"Invalid request to {request.url.path}: {fields}")
        return JSONResponse(status_code=400, content={"detail": f"Invalid parameters: {fields}"})

    @app.post("/api/pageView", response_model=CreatePageViewResponse, response_model_exclude_none=True)
    async def create_page_view(attributes: Any = Body(...)):
        """Create a new page view vertex in the graph."""
        try:
            return page_view_handler.create_page_view(attributes)
        except Exception as e:
            raise _http_error(e, "creating page view")

    @app.post("/api/pageView/{vertex_id}", response_model=MessageResponse)
    async def update_page_view(vertex_id: str, attributes: Any = Body(...)):
        """Update an existing page view vertex in the graph."""
        try:
            return page_view_handler.update_page_view(vertex_id, attributes)
        except Exception as e:
            raise _http_error(e, "updating page view")

    @app.get("/api/search", response_model=SearchResponse)
    async def search_page_views(
        user_guid: str = Query("", alias="userGuid", description="The user to retrieve information for"),
        domain: str = Query("", description="Retrieve pages with this domain"),
        open_time: str = Query("", alias="openTime", description="The middle of a time based query"),
        time_range: int = Query(settings.default_time_range, alias="timeRange",
                                description="The range of time to search around openTime"),
        time_range_units: str = Query(settings.default_time_range_units, alias="timeRangeUnits",
                                      description="hours, minutes, seconds"),
        include_successors: bool = Query(False, alias="includeSuccessors",
                                         description="Whether or not to include all successors to a search result"),
        include_children: bool = Query(False, alias="includeChildren",
                                       description="Whether or not to include all children of a search result"),
    ):
        """Get the results of a search."""
        try:
            results = search_handler.search(
                user_guid=user_guid,
                open_time=open_time,
                time_range=time_range,
                time_range_units=time_range_units,
                domain=domain or None,
                include_successors=include_successors,
                include_children=include_children,
            )
            return SearchResponse(results=results)
        except Exception as e:
            raise _http_error(e, "searching page views")

    @app.get("/api/stats")
    async def get_stats():
        """Get database statistics."""
        try:
            return graph.get_database_stats()
        except Exception as e:
            raise _http_error(e, "getting stats")

    return app


app = create_app()


if __name__ == "__main__":
    logger.info("Starting Parsley API server")

    uvicorn.run(
        "api_server:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level="info"
    )
