"""
Tests for the error taxonomy and the {data, error} folding.
"""

from sqlalchemy.exc import OperationalError

from vendorhub.errors import (
    AppendOnlyViolation,
    ConflictError,
    FetchError,
    InputValidationError,
    NotFoundError,
    UnauthenticatedError,
    WriteError,
    envelope,
    handle_api_error,
)


async def _returns(value):
    return value


async def _raises(exc):
    raise exc


class TestErrorTaxonomy:
    def test_codes_and_statuses(self):
        cases = [
            (WriteError(), "write_error", 500),
            (FetchError("vendor_spend"), "fetch_error", 502),
            (InputValidationError("bad", field="n"), "validation_error", 422),
            (NotFoundError("Vendor", "v-1"), "not_found", 404),
            (AppendOnlyViolation("a-1"), "append_only_violation", 409),
            (UnauthenticatedError(), "unauthenticated", 401),
            (ConflictError("Profile", "user-1"), "conflict", 409),
        ]
        for exc, code, status in cases:
            api_error = exc.to_api_error()
            assert (api_error.code, api_error.status) == (code, status)

    def test_fetch_error_names_source(self):
        exc = FetchError("recent_documents")
        assert exc.source == "recent_documents"
        assert exc.message == "Failed to load recent documents"
        assert exc.details == {"source": "recent_documents"}

    def test_envelope(self):
        assert envelope([1, 2]) == {"data": [1, 2], "error": None}


class TestHandleApiError:
    async def test_success(self):
        resp = await handle_api_error(_returns({"total": 3}))
        assert resp.ok
        assert resp.data == {"total": 3}

    async def test_service_error_folded(self):
        resp = await handle_api_error(_raises(FetchError("vendor_categories")))
        assert resp.data is None
        assert resp.error.code == "fetch_error"
        assert resp.error.details == {"source": "vendor_categories"}

    async def test_store_error_never_leaks(self):
        resp = await handle_api_error(_raises(OperationalError("SELECT 1", {}, Exception("disk I/O error"))))
        assert resp.error.code == "database_error"
        assert "disk" not in resp.error.message
