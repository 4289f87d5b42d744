"""Tests for the error taxonomy and the wrapping decorator."""

import pytest

from pulse.core.exceptions import ErrorCode, PulseError, wrap_errors


class TestPulseError:
    def test_from_exception_formats_message(self):
        error = PulseError.from_exception(
            ValueError("bad payload"),
            ErrorCode.ACCOUNT_FETCH_FAILED,
            "Failed to fetch accounts",
            provider="plaid",
        )
        assert error.message == "Failed to fetch accounts: bad payload"
        assert error.code == ErrorCode.ACCOUNT_FETCH_FAILED
        assert error.provider == "plaid"

    def test_from_exception_uses_class_name_for_empty_message(self):
        error = PulseError.from_exception(KeyError(), ErrorCode.UNKNOWN_ERROR, "Failed")
        assert error.message == "Failed: KeyError"

    def test_from_exception_never_double_wraps(self):
        original = PulseError("already tagged", ErrorCode.VALIDATION_ERROR)
        assert PulseError.from_exception(original, ErrorCode.UNKNOWN_ERROR, "Failed") is original

    def test_code_accepts_string_value(self):
        assert PulseError("x", "PROVIDER_NOT_FOUND").code is ErrorCode.PROVIDER_NOT_FOUND

    def test_to_dict_omits_missing_context(self):
        error = PulseError("nope", ErrorCode.PROVIDER_NOT_FOUND, provider="teller")
        assert error.to_dict() == {
            "error": {
                "code": "PROVIDER_NOT_FOUND",
                "message": "nope",
                "context": {"provider": "teller"},
            }
        }

    def test_detailed_string_lists_metadata(self):
        error = PulseError(
            "boom",
            ErrorCode.TRANSACTION_FETCH_FAILED,
            provider="plaid",
            user_id="user-1",
            account_id="acc-1",
            method="get_transactions",
            details={"status": 500},
        )
        text = error.to_detailed_string()
        for fragment in ("boom", "TRANSACTION_FETCH_FAILED", "plaid", "user-1", "acc-1", "get_transactions", "500"):
            assert fragment in text


class Service:
    provider = "svc"

    @wrap_errors(ErrorCode.ACCOUNT_FETCH_FAILED, "fetch accounts")
    async def get_accounts(self, user_id, account_id=None):
        raise RuntimeError("socket closed")

    @wrap_errors(ErrorCode.ACCOUNT_FETCH_FAILED, "fetch accounts")
    async def tagged(self, user_id):
        raise PulseError("not connected", ErrorCode.PROVIDER_CONNECTION_FAILED)

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "connect")
    async def connect(self, user_id, provider=None):
        raise RuntimeError("refused")


class TestWrapErrors:
    @pytest.mark.asyncio
    async def test_wraps_with_call_metadata(self):
        with pytest.raises(PulseError) as exc_info:
            await Service().get_accounts("user-1", account_id="acc-9")

        error = exc_info.value
        assert error.code == ErrorCode.ACCOUNT_FETCH_FAILED
        assert error.message == "Failed to fetch accounts: socket closed"
        assert (error.provider, error.user_id, error.account_id) == ("svc", "user-1", "acc-9")
        assert error.method == "get_accounts"
        assert isinstance(error.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_tagged_errors_pass_through(self):
        with pytest.raises(PulseError) as exc_info:
            await Service().tagged("user-1")
        assert exc_info.value.code == ErrorCode.PROVIDER_CONNECTION_FAILED

    @pytest.mark.asyncio
    async def test_provider_argument_preferred(self):
        with pytest.raises(PulseError) as exc_info:
            await Service().connect("user-1", provider="teller")
        assert exc_info.value.provider == "teller"

    @pytest.mark.asyncio
    async def test_mismatched_call_still_tagged(self):
        with pytest.raises(PulseError) as exc_info:
            await Service().connect("user-1", user_id="user-2")

        error = exc_info.value
        assert error.code == ErrorCode.PROVIDER_CONNECTION_FAILED
        assert error.user_id == "user-1"
        assert error.provider == "svc"
        assert isinstance(error.__cause__, TypeError)
