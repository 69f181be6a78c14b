from abc import ABC, abstractmethod


class AbstractTimestampProvider(ABC):
	"""Interface for the clock the limiter measures windows against."""

	@abstractmethod
	def now_seconds(self) -> int:
		"""Return the current time as whole UNIX seconds.

		Must not go backwards within a single limiter call. Prefer a trusted,
		server-side clock so callers cannot shift their own windows.
		"""
		...
