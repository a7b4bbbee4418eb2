"""
Plan execution core.

Data Collector → Step Executor → Synthesizer, plus the data model and the
tool invocation policy they share.
"""

from .collector import DataCollector, assess_data_quality
from .errors import (
    DeadlineExceededError,
    ExecutorError,
    PlanValidationError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolTimeoutError,
)
from .invocation import ExecutionDeadline, RetryPolicy, invoke_tool
from .models import (
    AnalysisApproach,
    AnalysisPlan,
    AnalysisStep,
    DataCollectionResult,
    DataRequirement,
    ExecutionState,
    ExecutionStepResult,
    ExecutionSummary,
    ExecutorOutput,
    FinalAnalysis,
    RequirementType,
    RuntimeAdjustments,
    StepStatus,
    ToolCall,
    ToolCallResult,
)
from .step_runner import StepExecutor, classify_step
from .synthesizer import synthesize

__all__ = [
    # Models
    "AnalysisApproach",
    "AnalysisPlan",
    "AnalysisStep",
    "DataCollectionResult",
    "DataRequirement",
    "ExecutionState",
    "ExecutionStepResult",
    "ExecutionSummary",
    "ExecutorOutput",
    "FinalAnalysis",
    "RequirementType",
    "RuntimeAdjustments",
    "StepStatus",
    "ToolCall",
    "ToolCallResult",
    # Errors
    "DeadlineExceededError",
    "ExecutorError",
    "PlanValidationError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolTimeoutError",
    # Invocation
    "ExecutionDeadline",
    "RetryPolicy",
    "invoke_tool",
    # Components
    "DataCollector",
    "StepExecutor",
    "assess_data_quality",
    "classify_step",
    "synthesize",
]
