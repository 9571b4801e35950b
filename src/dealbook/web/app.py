"""FastAPI application serving deal queries to the desktop UI."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dealbook.config import AppConfig
from dealbook.deals import DealFilters, DealService, DealsRequest
from dealbook.errors import DataDirectoryError, NotFoundError, ScanAborted
from dealbook.models import QueryOptions, SortSpec

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Dealbook API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FiltersPayload(CamelModel):
    transaction_types: List[str] = Field(default_factory=list)
    start_date: str | None = None
    end_date: str | None = None
    min_size: float | None = None
    max_size: float | None = None
    regions: List[str] = Field(default_factory=list)
    industries: List[str] = Field(default_factory=list)


class DealsPayload(CamelModel):
    search_query: str = ""
    filters: FiltersPayload = Field(default_factory=FiltersPayload)
    page: int = Field(0, ge=0)
    page_size: int = Field(100, ge=1, le=1000)
    sort_field: str | None = "announcementDate"
    sort_direction: Literal["asc", "desc"] = "desc"


class QueryPayload(CamelModel):
    filter: Dict[str, Any] = Field(default_factory=dict)
    limit: int | None = Field(None, ge=0)
    offset: int = Field(0, ge=0)
    fields: List[str] = Field(default_factory=list)
    sort_field: str | None = None
    sort_direction: Literal["asc", "desc"] = "asc"


def _resolve_data_dir(data: Path | None) -> Path:
    if data is None:
        data = getattr(app.state, "data_dir", None)
    config = AppConfig(data_dir=data if data is not None else AppConfig().data_dir)
    return config.resolve_data_dir(Path.cwd())


@lru_cache(maxsize=8)
def _service_for(data_dir: Path, table: str) -> DealService:
    LOGGER.info("Opening chunk directory %s (table %s)", data_dir, table)
    return DealService.open(data_dir, table=table)


def get_service(data: Path | None = None, table: str | None = None) -> DealService:
    return _service_for(_resolve_data_dir(data), table or AppConfig().table)


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DataDirectoryError)
async def data_dir_handler(request: Request, exc: DataDirectoryError) -> JSONResponse:
    LOGGER.error("Engine not initialized: %s", exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(ScanAborted)
async def scan_aborted_handler(request: Request, exc: ScanAborted) -> JSONResponse:
    return JSONResponse(status_code=504, content={"detail": str(exc)})


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/tables")
def list_tables(data: Path | None = None) -> dict[str, Any]:
    store = get_service(data).engine.store
    tables = [store.get_table_metadata(name).to_dict() for name in sorted(store.list_tables())]
    return {"tables": tables}


@app.get("/tables/{name}")
def table_metadata(name: str, data: Path | None = None) -> dict[str, Any]:
    meta = get_service(data).engine.store.get_table_metadata(name)
    if meta is None:
        raise HTTPException(status_code=404, detail=f"Table '{name}' not found")
    return meta.to_dict()


@app.post("/query/{table}")
def query_table(table: str, payload: QueryPayload, data: Path | None = None) -> dict[str, Any]:
    """Raw access to the query engine for any table."""
    engine = get_service(data).engine
    options = QueryOptions(
        filter=payload.filter,
        limit=payload.limit,
        offset=payload.offset,
        fields=payload.fields,
        sort=SortSpec(payload.sort_field, payload.sort_direction) if payload.sort_field else None,
    )
    result = engine.query(table, options)
    return {
        "data": result.data,
        "total": result.total,
        "offset": result.offset,
        "limit": result.limit,
        "degradedChunks": result.degraded_chunks,
    }


@app.get("/data-loaded")
def data_loaded(data: Path | None = None) -> dict[str, bool]:
    try:
        return {"loaded": get_service(data).is_data_loaded()}
    except DataDirectoryError:
        return {"loaded": False}


@app.post("/deals")
def get_deals(payload: DealsPayload, data: Path | None = None) -> dict[str, Any]:
    request = DealsRequest(
        search_query=payload.search_query,
        filters=DealFilters.from_dict(payload.filters.model_dump(by_alias=True)),
        page=payload.page,
        page_size=payload.page_size,
        sort_field=payload.sort_field,
        sort_direction=payload.sort_direction,
    )
    result = get_service(data).get_deals(request)
    return {**result.to_dict(), "degradedChunks": result.degraded_chunks}


@app.get("/deals/{deal_id}")
def get_deal(deal_id: str, data: Path | None = None) -> dict[str, Any]:
    return get_service(data).get_deal_by_id(deal_id)


@app.get("/statistics")
def get_statistics(data: Path | None = None) -> dict[str, Any]:
    return get_service(data).get_statistics().to_dict()


@app.get("/filter-options")
def get_filter_options(data: Path | None = None) -> dict[str, List[str]]:
    return get_service(data).get_filter_options().to_dict()
