from .feedback import FeedbackLoop, OptimizationIteration, identify_issues

__all__ = ["FeedbackLoop", "OptimizationIteration", "identify_issues"]
