import time
from dataclasses import dataclass, field

from pagetree.config import DOMSerializerConfig
from pagetree.dom.serializer.clickable_elements import ClickableElementDetector
from pagetree.dom.views import DOMSelectorMap, EnhancedDOMTreeNode


@dataclass
class SerializationContext:
	"""
	Working state of one serialization call.

	Created fresh by `DOMTreeSerializer.serialize_accessible_elements` and passed to every
	stage, so two serializations never share caches or counters.
	"""

	config: DOMSerializerConfig = field(default_factory=DOMSerializerConfig)
	previous_selector_map: DOMSelectorMap | None = None

	interactive_counter: int = 1
	selector_map: DOMSelectorMap = field(default_factory=dict)
	timing_info: dict[str, float] = field(default_factory=dict)

	# Cache for clickable element detection, keyed by node_id (stable within one capture)
	_clickable_cache: dict[int, bool] = field(default_factory=dict, repr=False)
	_previous_backend_node_ids: set[int] | None = field(default=None, repr=False)

	def __post_init__(self) -> None:
		if self.previous_selector_map is not None:
			self._previous_backend_node_ids = {node.backend_node_id for node in self.previous_selector_map.values()}

	def is_interactive(self, node: EnhancedDOMTreeNode) -> bool:
		"""Cached version of clickable element detection to avoid redundant calls across stages."""
		if node.node_id not in self._clickable_cache:
			start = time.time()
			result = ClickableElementDetector.is_interactive(node)
			self.timing_info['clickable_detection_time'] = (
				self.timing_info.get('clickable_detection_time', 0.0) + time.time() - start
			)
			self._clickable_cache[node.node_id] = result

		return self._clickable_cache[node.node_id]

	@staticmethod
	def is_visible(node: EnhancedDOMTreeNode) -> bool:
		return bool(node.snapshot_node and node.is_visible)

	def is_interactive_and_visible(self, node: EnhancedDOMTreeNode) -> bool:
		return self.is_interactive(node) and self.is_visible(node)

	def is_new(self, node: EnhancedDOMTreeNode) -> bool:
		"""A node is new when a previous map was supplied and its backend_node_id is not in it."""
		if self._previous_backend_node_ids is None:
			return False
		return node.backend_node_id not in self._previous_backend_node_ids

	def next_index(self, node: EnhancedDOMTreeNode) -> int:
		index = self.interactive_counter
		self.selector_map[index] = node
		self.interactive_counter += 1
		return index
