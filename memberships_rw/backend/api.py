"""Read/write endpoints for a mounted RWService.

Routes (relative to /{service}):
- GET    /__count  -> 200 count
- GET    /{uuid}   -> 200 record | 404
- PUT    /{uuid}   -> 200 | 400 | 409
- DELETE /{uuid}   -> 204 | 404
Store failures map to 503.
"""

from fastapi import APIRouter, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette import status
from starlette.concurrency import run_in_threadpool

from memberships_rw.backend.service import RWService
from memberships_rw.errors import (
    ConstraintOrTransactionError,
    DecodeError,
    InvalidRequestError,
    QueryRunnerError,
)
from memberships_rw.log_config import get_logger

log = get_logger("backend.api")


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def build_service_router(service_name: str, service: RWService) -> APIRouter:
    """Create the router serving one service's records."""
    router = APIRouter()

    @router.get("/__count")
    def count_records() -> Response:
        try:
            count = service.count()
        except QueryRunnerError as e:
            log.error(f"Count of {service_name} failed: {e}")
            return _error(str(e), status.HTTP_503_SERVICE_UNAVAILABLE)
        return JSONResponse(content=count)

    @router.get("/{uuid}")
    def read_record(uuid: str) -> Response:
        try:
            record, found = service.read(uuid)
        except QueryRunnerError as e:
            log.error(f"Read of {service_name} {uuid} failed: {e}")
            return _error(str(e), status.HTTP_503_SERVICE_UNAVAILABLE)
        if not found:
            return _error(f"{service_name} not found", status.HTTP_404_NOT_FOUND)
        return JSONResponse(content=jsonable_encoder(record, by_alias=True, exclude_none=True))

    @router.put("/{uuid}")
    async def write_record(uuid: str, request: Request) -> Response:
        body = await request.body()
        try:
            record, doc_uuid = service.decode_json(body)
        except DecodeError as e:
            return _error(str(e), status.HTTP_400_BAD_REQUEST)

        if doc_uuid != uuid:
            return _error(
                f"Uuids from payload and request, respectively, do not match: '{doc_uuid}' '{uuid}'",
                status.HTTP_400_BAD_REQUEST,
            )

        try:
            await run_in_threadpool(service.write, record)
        except InvalidRequestError as e:
            return _error(str(e), status.HTTP_400_BAD_REQUEST)
        except ConstraintOrTransactionError as e:
            log.warning(f"Write of {service_name} {uuid} conflicted: {e}")
            return _error(str(e), status.HTTP_409_CONFLICT)
        except QueryRunnerError as e:
            log.error(f"Write of {service_name} {uuid} failed: {e}")
            return _error(str(e), status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(status_code=status.HTTP_200_OK)

    @router.delete("/{uuid}")
    def delete_record(uuid: str) -> Response:
        try:
            deleted = service.delete(uuid)
        except QueryRunnerError as e:
            log.error(f"Delete of {service_name} {uuid} failed: {e}")
            return _error(str(e), status.HTTP_503_SERVICE_UNAVAILABLE)
        if not deleted:
            return _error(f"{service_name} not found", status.HTTP_404_NOT_FOUND)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
