import logging

from pagetree.dom.geometry import containment_ratio
from pagetree.dom.views import DOMRect, EnhancedDOMTreeNode, NodeType, PropagatingBounds, SimplifiedNode

logger = logging.getLogger(__name__)

DEFAULT_CONTAINMENT_THRESHOLD = 0.99

# (tag, role) patterns whose bounds propagate to all descendants; role None matches any role
PROPAGATING_ELEMENTS: list[tuple[str, str | None]] = [
	('a', None),
	('button', None),
	('div', 'button'),
	('div', 'combobox'),
	('span', 'button'),
	('span', 'combobox'),
	('input', 'combobox'),
]

FORM_CONTROL_TAGS = {'input', 'select', 'textarea', 'label'}

INDEPENDENTLY_INTERACTIVE_ROLES = {'button', 'link', 'checkbox', 'radio', 'tab', 'menuitem'}


def is_propagating_element(node: EnhancedDOMTreeNode) -> bool:
	"""Check if the element starts bounds propagation for its descendants."""
	tag = node.tag_name
	role = node.attributes.get('role')
	return any(
		tag == pattern_tag and (pattern_role is None or pattern_role == role)
		for pattern_tag, pattern_role in PROPAGATING_ELEMENTS
	)


class BoundingBoxFilter:
	"""
	Step 3: hide decorative descendants visually contained in links, buttons and comboboxes.

	Bounds propagate to all descendants until a deeper propagating element replaces them. A
	node is excluded when at least `containment_threshold` of its own area lies inside the
	active bounds, unless it is a text node, a form control, a propagating element itself, or
	carries an `onclick`, a non-empty `aria-label` or an interactive role. Excluded nodes keep
	their children, which are rendered one level up.
	"""

	def __init__(self, root: SimplifiedNode | None, containment_threshold: float = DEFAULT_CONTAINMENT_THRESHOLD):
		self.root = root
		self.containment_threshold = containment_threshold

	def apply(self) -> int:
		"""Mark contained nodes as `excluded_by_parent` and return how many were excluded."""
		if not self.root:
			return 0

		self._filter_tree_recursive(self.root, None, 0)

		excluded_count = self._count_excluded_nodes(self.root)
		if excluded_count > 0:
			logger.debug(f'BBox filtering excluded {excluded_count} nodes')
		return excluded_count

	def _filter_tree_recursive(self, node: SimplifiedNode, active_bounds: PropagatingBounds | None, depth: int) -> None:
		# Exclusion is decided before this node can start its own propagation
		if active_bounds and self._should_exclude_child(node, active_bounds):
			node.excluded_by_parent = True

		new_bounds = None
		original = node.original_node
		if is_propagating_element(original) and original.snapshot_node and original.snapshot_node.bounds:
			new_bounds = PropagatingBounds(
				tag=original.tag_name,
				bounds=original.snapshot_node.bounds,
				node_id=original.node_id,
				depth=depth,
			)

		propagate_bounds = new_bounds or active_bounds
		for child in node.children:
			self._filter_tree_recursive(child, propagate_bounds, depth + 1)

	def _should_exclude_child(self, node: SimplifiedNode, active_bounds: PropagatingBounds) -> bool:
		original = node.original_node

		# Text is always preserved
		if original.node_type == NodeType.TEXT_NODE:
			return False

		if not (original.snapshot_node and original.snapshot_node.bounds):
			return False

		if not self._is_contained(original.snapshot_node.bounds, active_bounds.bounds):
			return False

		# Form elements need individual interaction
		if original.tag_name in FORM_CONTROL_TAGS:
			return False

		# e.g. a button inside a button, which may stop propagation of clicks
		if is_propagating_element(original):
			return False

		if 'onclick' in original.attributes:
			return False

		if original.attributes.get('aria-label', '').strip():
			return False

		if original.attributes.get('role') in INDEPENDENTLY_INTERACTIVE_ROLES:
			return False

		return True

	def _is_contained(self, child: DOMRect, parent: DOMRect) -> bool:
		if child.area == 0:
			return False
		return containment_ratio(child, parent) >= self.containment_threshold

	def _count_excluded_nodes(self, node: SimplifiedNode) -> int:
		count = 1 if node.excluded_by_parent else 0
		for child in node.children:
			count += self._count_excluded_nodes(child)
		return count
