"""Tests for release_publisher.exceptions module."""

import pytest

from release_publisher.exceptions import (
    ConfigurationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ReleasePublisherError,
    ReleaseStepError,
    RequestFailedError,
    TransportError,
    ValidationError,
    format_error_chain,
)


class TestReleasePublisherError:
    """Test base ReleasePublisherError class."""

    def test_init_with_message(self):
        """Test initialization with message."""
        error = ReleasePublisherError("Test error message")

        assert error.message == "Test error message"
        assert str(error) == "Test error message"

    def test_all_errors_share_the_base(self):
        """Test that every error can be caught with one except clause."""
        for error in (
            ConfigurationError("x"),
            ValidationError("x"),
            TransportError("x"),
            RequestFailedError(500, "x"),
            NotFoundError(404, "x"),
            ConflictError(409, "x"),
            ReleaseStepError("x"),
        ):
            assert isinstance(error, ReleasePublisherError)


class TestValidationError:
    """Test ValidationError class."""

    def test_is_configuration_error(self):
        """Missing input is a configuration problem."""
        with pytest.raises(ConfigurationError):
            raise ValidationError("version is required")


class TestRequestFailedError:
    """Test RequestFailedError and its status subclasses."""

    def test_default_message_includes_status_and_body(self):
        """Test the message carries the status code and raw body."""
        error = RequestFailedError(502, "<html>Bad gateway</html>")

        assert error.status_code == 502
        assert error.response_text == "<html>Bad gateway</html>"
        assert str(error) == "Request failed with 502: <html>Bad gateway</html>"

    def test_custom_message(self):
        """Test overriding the message keeps the attributes."""
        error = RequestFailedError(500, "body", message="server broke")

        assert error.message == "server broke"
        assert error.status_code == 500

    def test_subclasses(self):
        """Test NotFound and Conflict are request failures and external errors."""
        assert isinstance(NotFoundError(404, ""), RequestFailedError)
        assert isinstance(ConflictError(409, ""), RequestFailedError)
        assert isinstance(ConflictError(409, ""), ExternalServiceError)
        assert not isinstance(ConflictError(409, ""), NotFoundError)


class TestReleaseStepError:
    """Test ReleaseStepError class."""

    def test_step_attribute(self):
        """Test the step identifier is kept."""
        error = ReleaseStepError("failed to create branch", step="create_branch")

        assert error.step == "create_branch"
        assert error.message == "failed to create branch"

    def test_step_defaults_to_none(self):
        assert ReleaseStepError("failed").step is None


class TestFormatErrorChain:
    """Test format_error_chain function."""

    def test_single_error(self):
        assert format_error_chain(ValueError("boom")) == "boom"

    def test_walks_causes(self):
        """Test the chain is rendered outermost first."""
        try:
            try:
                try:
                    raise ConflictError(409, "stale sha")
                except ConflictError as e:
                    raise ReleaseStepError('failed to set contents of file "a.yaml"') from e
            except ReleaseStepError as e:
                raise ReleaseStepError("failed to update kubernetes operator repo") from e
        except ReleaseStepError as e:
            rendered = format_error_chain(e)

        assert rendered == (
            "failed to update kubernetes operator repo: "
            'failed to set contents of file "a.yaml": '
            "Request failed with 409: stale sha"
        )

    def test_empty_message_uses_type_name(self):
        assert format_error_chain(KeyError()) == "KeyError"
