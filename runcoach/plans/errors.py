# runcoach/plans/errors.py

"""
Failure kinds surfaced by the plan pipeline.

Each error carries the HTTP status and the message shown to the runner.
Collaborator error text is logged, never returned.
"""


class PlanError(Exception):
    status_code = 500
    user_message = "Something went wrong with your training plan."

    def __init__(self, detail=None, user_message=None):
        super().__init__(detail or self.user_message)
        self.detail = detail
        if user_message:
            self.user_message = user_message

    @property
    def kind(self):
        return type(self).__name__

    def to_dict(self):
        return {"error": self.user_message, "kind": self.kind}


class PlanNotFound(PlanError):
    status_code = 404
    user_message = "Training plan not found."


class IncompleteProfile(PlanError):
    status_code = 400
    user_message = "Please complete your goal, race date, race distance, weekly mileage and training days first."


class GenerationFailed(PlanError):
    status_code = 502
    user_message = "Failed to generate your training plan, please retry."


class GenerationTimeout(GenerationFailed):
    status_code = 504
    user_message = "Generating your training plan took too long, please retry."


class EnhancementFailed(PlanError):
    status_code = 502
    user_message = "Failed to load the details for this day, please retry."


class EnhancementTimeout(EnhancementFailed):
    status_code = 504
    user_message = "Loading the details for this day took too long, please retry."


class EnhancementLimitReached(PlanError):
    status_code = 429
    user_message = "We couldn't load the details for this day. Dismiss and try again later."


class StalePlanReference(PlanError):
    status_code = 409
    user_message = "This plan is no longer current. Reload to see your latest plan."


class StoreInconsistency(PlanError):
    status_code = 409
    user_message = "Plan data may be out of date. Reload to refresh it."


class WriteConflict(PlanError):
    status_code = 409
    user_message = "Your plan was being updated at the same time. Please retry."
