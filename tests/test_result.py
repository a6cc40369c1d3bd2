"""Unit tests for tagged results."""
import dataclasses

import pytest

from tenant_rbac.core.errors import NotFoundError
from tenant_rbac.core.result import Failure, Success, failure, is_failure, is_success, map_result, success, unwrap


class TestResult:

    def test_success_carries_data(self):
        result = success([1, 2])
        assert result.success is True
        assert result.data == [1, 2]
        assert is_success(result) and not is_failure(result)

    def test_failure_carries_error(self):
        error = NotFoundError("user")
        result = failure(error)
        assert result.success is False
        assert result.error is error
        assert is_failure(result)

    def test_unwrap(self):
        assert unwrap(Success("x")) == "x"
        with pytest.raises(NotFoundError):
            unwrap(Failure(NotFoundError("role")))

    def test_map_result(self):
        assert map_result(Success(2), lambda v: v * 10) == Success(20)
        failed = Failure(NotFoundError("role"))
        assert map_result(failed, lambda v: v * 10) is failed

    def test_results_are_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            Success(1).data = 2  # type: ignore[misc]
