from credits_engine.economy.submissions.service import SubmissionService

__all__ = ["SubmissionService"]
