"""
Unit tests for custom exceptions.
"""

from segrefine.utils.config_validator import ConfigValidationError
from segrefine.utils.exceptions import (
    BatchValidationError,
    ConfigurationError,
    PipelineError,
    UnknownClassError,
)


class TestExceptions:

    def test_pipeline_error_plain_message(self):
        err = PipelineError("Base error")
        assert str(err) == "Base error"
        assert err.details == {}

    def test_stage_and_details_in_message(self):
        err = BatchValidationError("Inference arrays are not aligned", stage="input", details={"boxes": 2, "scores": 1})
        assert str(err) == "[input] Inference arrays are not aligned (boxes=2, scores=1)"
        assert isinstance(err, PipelineError)

    def test_hierarchy(self):
        assert issubclass(UnknownClassError, ConfigurationError)
        assert issubclass(ConfigValidationError, ConfigurationError)
        assert not issubclass(BatchValidationError, ConfigurationError)
