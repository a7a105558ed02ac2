class PageTreeError(Exception):
	"""Base class for errors raised by pagetree."""


class MalformedDOMTreeError(PageTreeError):
	"""Raised when a captured DOM tree cannot be ingested.

	This is the only error the serialization pipeline lets escape: the capture
	is either missing or a node record lacks the identity fields every later
	stage relies on. Callers are expected to retry the capture.
	"""

	def __init__(self, message: str, node: dict | None = None):
		super().__init__(message)
		self.message = message
		self.node = node

	def __str__(self) -> str:
		if self.node is None:
			return self.message
		return f'{self.message} (node keys: {sorted(self.node.keys())})'
