"""Tests for catalog_spine.core.errors -- hierarchy, messages, serialization."""

import pytest

from catalog_spine.core.errors import (
    CatalogError,
    ChangeVetoedError,
    ConfigError,
    CyclicHierarchyError,
    ErrorCategory,
    ErrorContext,
    OperationCancelledError,
    ResolutionError,
    StoreError,
    ValidationError,
    categorize_error,
)


class TestCatalogError:
    def test_default_category(self):
        err = CatalogError("boom")
        assert err.category == ErrorCategory.INTERNAL
        assert str(err) == "boom"

    def test_cause_is_chained(self):
        cause = OSError("disk")
        err = StoreError("commit failed", cause=cause)
        assert err.__cause__ is cause
        assert err.to_dict()["cause"] == "disk"

    def test_with_context(self):
        err = StoreError("commit failed").with_context(operation="save", shard=3)
        assert err.context.operation == "save"
        assert err.context.metadata == {"shard": 3}

    def test_context_to_dict_skips_none(self):
        ctx = ErrorContext(entity_type="product", metadata={"k": "v"})
        assert ctx.to_dict() == {"entity_type": "product", "k": "v"}

    @pytest.mark.parametrize(
        "error_cls",
        [ResolutionError, ValidationError, ConfigError, StoreError, OperationCancelledError, ChangeVetoedError],
    )
    def test_all_errors_are_catalog_errors(self, error_cls):
        assert issubclass(error_cls, CatalogError)


class TestResolutionError:
    def test_message_names_field_id_and_owner(self):
        err = ResolutionError("catalog", "c-9", owner_id="cat-1")
        assert str(err) == "catalog with key c-9 doesn't exist (referenced by cat-1)"
        assert err.entity_id == "c-9"
        assert err.context.owner_id == "cat-1"
        assert err.to_dict()["category"] == "RESOLUTION"
        assert err.to_dict()["field"] == "catalog"


class TestValidationError:
    def test_violations_listed_in_message(self):
        err = ValidationError("2 problems", violations=["name is required", "code is required"])
        assert err.violations == ["name is required", "code is required"]
        assert str(err).splitlines() == ["2 problems", "name is required", "code is required"]
        assert err.to_dict()["violations"] == err.violations


class TestCyclicHierarchyError:
    def test_is_config_error_with_path(self):
        err = CyclicHierarchyError("a", ["a", "b"])
        assert isinstance(err, ConfigError)
        assert "a -> b -> a" in str(err)
        assert err.context.entity_type == "category"


class TestChangeVetoedError:
    def test_reason_in_message(self):
        err = ChangeVetoedError("product.changing", "locked")
        assert str(err) == "Change cancelled by subscriber of product.changing: locked"
        assert err.category == ErrorCategory.CANCELLED


class TestCategorizeError:
    def test_catalog_error_category(self):
        assert categorize_error(ResolutionError("x", "1")) == ErrorCategory.RESOLUTION

    def test_builtin_errors(self):
        assert categorize_error(KeyError("k")) == ErrorCategory.RESOLUTION
        assert categorize_error(ValueError("v")) == ErrorCategory.VALIDATION
        assert categorize_error(OSError("o")) == ErrorCategory.STORAGE
        assert categorize_error(Exception("e")) == ErrorCategory.UNKNOWN
