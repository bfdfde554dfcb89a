"""Tests for pipeline contracts.

These tests verify that contracts are enforced at stage boundaries.
They test contract violations directly, without defensive logic downstream.
"""

import pytest

pytestmark = pytest.mark.unit

from imfx.contracts import (
    ContractViolation,
    ExecutionError,
    ImfxError,
    InputError,
    InterruptedRun,
    ParameterError,
    UsageError,
    ValidationError,
    assert_composed,
    assert_staged,
    require,
)
from imfx.contracts.invariants import PIPELINE_INVARIANTS, STAGE_REQUIREMENTS
from imfx.pipeline.stager import StagedImage
from imfx.pipeline.steps import Pipeline, StepKind, step


class TestRequire:

    def test_require_passes(self):
        require(True, "never raised")

    def test_require_raises_contract_violation(self):
        with pytest.raises(ContractViolation, match="boom"):
            require(False, "boom")

    def test_contract_violation_is_not_user_error(self):
        assert not issubclass(ContractViolation, ImfxError)


class TestStagingContract:
    """Test staging stage contract."""

    def test_staging_contract_passes(self, temp_dir):
        path = temp_dir / "001-source.mpc"
        path.write_bytes(b"x")
        assert_staged(StagedImage(name="source", path=path, width=10, height=5))

    def test_staging_contract_fails_without_file(self, temp_dir):
        staged = StagedImage(name="source", path=temp_dir / "missing.mpc", width=10, height=5)
        with pytest.raises(ContractViolation, match="does not exist"):
            assert_staged(staged)

    def test_staging_contract_fails_with_zero_size(self, temp_dir):
        path = temp_dir / "001-source.mpc"
        path.write_bytes(b"x")
        with pytest.raises(ContractViolation):
            assert_staged(StagedImage(name="source", path=path, width=0, height=5))


class TestPipelineContract:
    """Test composition stage contract."""

    def test_valid_pipeline_passes(self):
        pipeline = Pipeline(
            steps=(
                step(StepKind.BLUR, "source", "low", sigma=1.0),
                step(StepKind.COMPOSITE, ("source", "low"), "result", compose="difference"),
            ),
            result="result",
        )
        assert_composed(pipeline, ["source"])

    def test_read_before_write_fails(self):
        pipeline = Pipeline(
            steps=(step(StepKind.COMPOSITE, ("source", "low"), "result", compose="over"),),
            result="result",
        )
        with pytest.raises(ContractViolation, match="before it is produced"):
            assert_composed(pipeline, ["source"])

    def test_overwriting_staged_input_fails(self):
        pipeline = Pipeline(
            steps=(step(StepKind.BLUR, "source", "source", sigma=1.0),),
            result="source",
        )
        with pytest.raises(ContractViolation, match="overwrites staged input"):
            assert_composed(pipeline, ["source"])

    def test_missing_result_fails(self):
        pipeline = Pipeline(
            steps=(step(StepKind.BLUR, "source", "low", sigma=1.0),),
            result="result",
        )
        with pytest.raises(ContractViolation, match="never produced"):
            assert_composed(pipeline, ["source"])

    def test_rebinding_intermediate_is_allowed(self):
        pipeline = Pipeline(
            steps=(
                step(StepKind.CLONE, "source", "current"),
                step(StepKind.COMPOSITE, ("current", "current"), "current", compose="lighten"),
            ),
            result="current",
        )
        assert_composed(pipeline, ["source"])


class TestErrorTaxonomy:

    @pytest.mark.parametrize("error", [
        UsageError("wrong number of arguments"),
        ValidationError("-f", "out of range"),
        InputError("in.png", "file does not exist"),
        ParameterError("slope undefined"),
        ExecutionError("engine failed", "stderr text"),
    ])
    def test_user_errors_exit_one_with_usage(self, error):
        assert isinstance(error, ImfxError)
        assert error.exit_code == 1
        assert error.show_usage

    def test_validation_error_names_flag(self):
        error = ValidationError("-u", "relative hue must be within -100..100")
        assert str(error) == "-u: relative hue must be within -100..100"
        assert error.flag == "-u"

    def test_input_error_names_path(self):
        error = InputError("missing.png", "file does not exist")
        assert "missing.png" in str(error)

    def test_execution_error_carries_diagnostic(self):
        error = ExecutionError("engine exited with status 1", "  convert: no decode delegate\n")
        assert error.diagnostic == "convert: no decode delegate"
        assert "no decode delegate" in str(error)

    def test_interrupted_run_exits_1_without_usage(self):
        error = InterruptedRun(15)
        assert error.signum == 15
        assert error.exit_code == 1
        assert not error.show_usage


def test_every_stage_is_required_and_documented():
    assert set(STAGE_REQUIREMENTS) == set(PIPELINE_INVARIANTS)
    assert all(v == "REQUIRED" for v in STAGE_REQUIREMENTS.values())
