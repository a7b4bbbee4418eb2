from src.executor import (
    AnalysisApproach,
    AnalysisPlan,
    ExecutionState,
    ExecutionStepResult,
    RequirementType,
    RuntimeAdjustments,
    StepStatus,
    ToolCallResult,
)


def step_result(step_id: str, status: StepStatus, insights=None) -> ExecutionStepResult:
    return ExecutionStepResult(
        step_id=step_id,
        status=status,
        tool_results=(),
        data_quality_score=0.0,
        confidence_in_results=0.0,
        derived_insights=insights,
    )


def test_plan_from_camel_case_dict():
    plan = AnalysisPlan.from_dict(
        {
            "planId": "p-1",
            "query": "Top churn drivers",
            "analysisApproach": "diagnostic",
            "dataRequirements": [{"source": "crm", "type": "api_call", "parameters": {"url": "/x"}}],
            "analysisSteps": [
                {"stepId": "s1", "stepType": "data_collection", "toolCalls": [{"toolId": "t", "parameters": {"a": 1}}]}
            ],
        }
    )

    assert plan.plan_id == "p-1"
    assert plan.original_query == "Top churn drivers"
    assert plan.approach is AnalysisApproach.DIAGNOSTIC
    assert plan.data_requirements[0].type is RequirementType.API_CALL
    assert plan.analysis_steps[0].step_type == "data_collection"
    assert plan.analysis_steps[0].tool_calls[0].parameters == {"a": 1}
    assert AnalysisPlan.from_dict(plan.to_dict()) == plan


def test_plan_defaults():
    plan = AnalysisPlan.from_dict({})
    assert plan.approach is AnalysisApproach.DESCRIPTIVE
    assert plan.analysis_steps == ()
    assert plan.plan_id


def test_runtime_adjustments_from_none_and_camel_case():
    assert RuntimeAdjustments.from_dict(None) == RuntimeAdjustments()
    adjustments = RuntimeAdjustments.from_dict({"skipSteps": ["s2"], "priorityOverride": "speed", "timeoutMs": 500})
    assert adjustments.skip_steps == ("s2",)
    assert adjustments.priority_override == "speed"
    assert adjustments.timeout_ms == 500


def test_record_step_books_each_status_once():
    state = ExecutionState.fresh(timeout_ms=1000)
    state.record_step(step_result("s1", StepStatus.COMPLETED, ("a", "b")))
    state.record_step(step_result("s2", StepStatus.PARTIAL, ("c",)))
    state.record_step(step_result("s3", StepStatus.FAILED))

    assert state.completed_steps == ["s1"]
    assert state.partial_steps == ["s2"]
    assert state.failed_steps == ["s3"]
    assert state.derived_insights == ["a", "b"]
    assert state.current_step_index == 3
    assert state.metadata["priority_mode"] == "accuracy"
    assert state.metadata["timeout_ms"] == 1000
    assert state.to_dict()["execution_metadata"]["started_at"]


def test_tool_call_result_serialises_output_or_error():
    ok = ToolCallResult(tool_id="t", input={}, execution_time_ms=3, output={"v": 1})
    failed = ToolCallResult(tool_id="t", input={}, execution_time_ms=3, error="boom")

    assert ok.succeeded and ok.to_dict()["output"] == {"v": 1}
    assert not failed.succeeded
    assert "output" not in failed.to_dict()
    assert failed.to_dict()["error"] == "boom"
