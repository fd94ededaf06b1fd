import pytest
from unittest.mock import AsyncMock, patch

from app.utils.exceptions import (
    AuthenticationError,
    DatabaseError,
    DuplicateRecordError,
    InvalidDocumentTypeError,
    InvalidPgBranchError,
    MissingUgFieldsError,
    NotFoundError,
    RemoteStoreError,
    UploadRejectedError,
    map_to_http_exception,
    retry_with_logging,
)


@pytest.mark.parametrize("exc,status", [
    (MissingUgFieldsError(index=0), 400),
    (InvalidPgBranchError(index=1, branch="XX"), 400),
    (InvalidDocumentTypeError("thesis"), 400),
    (UploadRejectedError("Only PDF files are allowed"), 400),
    (DuplicateRecordError(), 400),
    (AuthenticationError(), 401),
    (NotFoundError(), 404),
    (DatabaseError("down"), 500),
    (RemoteStoreError(), 500),
])
def test_status_mapping(exc, status):
    assert map_to_http_exception(exc).status_code == status


def test_to_dict_carries_details_and_cause():
    exc = InvalidPgBranchError(index=2, branch="XX", cause=ValueError("bad"))

    data = exc.to_dict()

    assert data["error_type"] == "InvalidPgBranchError"
    assert data["details"] == {"qualification_index": 2, "invalid_value": "XX"}
    assert data["cause"] == "bad"


@pytest.mark.asyncio
async def test_retry_repeats_listed_errors_until_success():
    calls = AsyncMock(side_effect=[ConnectionError("reset"), "ok"])

    @retry_with_logging(max_attempts=3, backoff_factor=0.0, exceptions=(ConnectionError,))
    async def flaky():
        return await calls()

    with patch('app.utils.exceptions.asyncio.sleep', new=AsyncMock()):
        assert await flaky() == "ok"

    assert calls.call_count == 2


@pytest.mark.asyncio
async def test_retry_lets_unlisted_errors_through_immediately():
    calls = AsyncMock(side_effect=ValueError("bad input"))

    @retry_with_logging(max_attempts=3, backoff_factor=0.0, exceptions=(ConnectionError,))
    async def broken():
        return await calls()

    with pytest.raises(ValueError):
        await broken()

    assert calls.call_count == 1
