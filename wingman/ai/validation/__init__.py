"""Model output repair and validation."""

from wingman.ai.validation.repair import JsonRepairer, RepairResult
from wingman.ai.validation.response import ResponseRepairer, format_validation_errors

__all__ = ["JsonRepairer", "RepairResult", "ResponseRepairer", "format_validation_errors"]
