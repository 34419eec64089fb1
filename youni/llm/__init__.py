from .llm_client import MODEL_ANALYSIS, MODEL_GENERAL, TaskType, get_llm, strip_code_fences

__all__ = ["MODEL_ANALYSIS", "MODEL_GENERAL", "TaskType", "get_llm", "strip_code_fences"]
