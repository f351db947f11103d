"""Exception taxonomy shared by the store, data services and plan session."""


class StudyTrackerError(Exception):
	"""Base class for all study-tracker errors."""
	pass


class NotFound(StudyTrackerError):
	"""A referenced plan, topic or milestone does not exist."""

	kind = "Item"

	def __init__(self, item_id: str):
		self.item_id = str(item_id)
		super().__init__(f"{self.kind} not found: {self.item_id}")


class PlanNotFoundError(NotFound):
	kind = "Plan"


class TopicNotFoundError(NotFound):
	kind = "Topic"


class MilestoneNotFoundError(NotFound):
	kind = "Milestone"


class TransportFailure(StudyTrackerError):
	"""The data service could not be reached or answered with a server error."""
	pass


class PersistFailure(TransportFailure):
	"""A mutation was applied locally but could not be saved."""

	def __init__(self, operation: str, cause: Exception):
		self.operation = operation
		self.cause = cause
		super().__init__(f"{operation} may not be saved: {cause}")


class ReloadFailure(TransportFailure):
	"""A mutation was saved but the plan could not be reloaded afterwards."""
	pass


class ValidationFailure(StudyTrackerError):
	"""Input rejected before any service round trip."""
	pass


class SuggestionServiceFailure(StudyTrackerError):
	"""The topic suggestion service is unavailable or misconfigured."""

	def __init__(self, message: str, misconfigured: bool = False):
		self.misconfigured = misconfigured
		super().__init__(message)


class SessionError(StudyTrackerError):
	"""Operation requires a loaded plan."""
	pass
