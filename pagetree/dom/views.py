from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from cdp_use.cdp.accessibility.commands import GetFullAXTreeReturns
from cdp_use.cdp.dom.commands import GetDocumentReturns
from cdp_use.cdp.domsnapshot.commands import CaptureSnapshotReturns
from uuid_extensions import uuid7str

from pagetree.exceptions import MalformedDOMTreeError
from pagetree.utils import cap_text_length

if TYPE_CHECKING:
	from collections.abc import Iterator

# Default attributes to include in serialization
DEFAULT_INCLUDE_ATTRIBUTES = [
	'title',
	'type',
	'checked',
	'name',
	'role',
	'value',
	'placeholder',
	'data-date-format',
	'alt',
	'aria-label',
	'aria-expanded',
	'data-state',
	'aria-checked',
	# Accessibility properties from ax_node (ordered by importance for automation)
	'checked',
	'selected',
	'expanded',
	'pressed',
	'disabled',
	'valuenow',
	'keyshortcuts',
	'haspopup',
	'multiselectable',
	'required',
	'valuetext',
	'level',
	'busy',
	'live',
	# Accessibility name (contains text content for StaticText elements)
	'ax_name',
]


class NodeType(int, Enum):
	"""DOM node types as numbered by the DOM standard."""

	ELEMENT_NODE = 1
	ATTRIBUTE_NODE = 2
	TEXT_NODE = 3
	CDATA_SECTION_NODE = 4
	ENTITY_REFERENCE_NODE = 5
	ENTITY_NODE = 6
	PROCESSING_INSTRUCTION_NODE = 7
	COMMENT_NODE = 8
	DOCUMENT_NODE = 9
	DOCUMENT_TYPE_NODE = 10
	DOCUMENT_FRAGMENT_NODE = 11
	NOTATION_NODE = 12


@dataclass(slots=True)
class DOMRect:
	x: float
	y: float
	width: float
	height: float

	@property
	def area(self) -> float:
		if self.width <= 0 or self.height <= 0:
			return 0.0
		return self.width * self.height

	def to_dict(self) -> dict[str, Any]:
		return {
			'x': self.x,
			'y': self.y,
			'width': self.width,
			'height': self.height,
		}

	def __json__(self) -> dict:
		return self.to_dict()


@dataclass(slots=True)
class EnhancedAXProperty:
	"""we don't need `sources` and `related_nodes` for now"""

	name: str
	value: str | bool | float | None


@dataclass(slots=True)
class EnhancedAXNode:
	ax_node_id: str
	"""Not to be confused the DOM node_id. Only useful for AX node tree"""
	ignored: bool
	role: str | None
	name: str | None
	description: str | None

	properties: list[EnhancedAXProperty] | None
	child_ids: list[str] | None = None


@dataclass(slots=True)
class EnhancedSnapshotNode:
	"""Snapshot data extracted from DOMSnapshot for enhanced functionality."""

	is_clickable: bool | None = None
	cursor_style: str | None = None
	bounds: DOMRect | None = None
	"""
	Document coordinates (origin = top-left of the page, ignores current scroll).
	Typical use: quick hit-test that doesn't care about scroll position.
	"""

	clientRects: DOMRect | None = None
	"""
	Viewport coordinates (origin = top-left of the visible scrollport).
	Equivalent JS API: element.getClientRects() / getBoundingClientRect().
	"""

	scrollRects: DOMRect | None = None
	"""
	Scrollable area of the element. x/y hold the current scroll offset.
	"""

	computed_styles: dict[str, str] | None = None
	"""Computed styles from the layout tree"""
	paint_order: int | None = None
	stacking_contexts: int | None = None


@dataclass(slots=True, eq=False)
class EnhancedDOMTreeNode:
	"""
	DOM node merged with its AX and snapshot data.

	Relations are stored as `node_id` references into the owning `EnhancedDOMTree`
	and resolved through the `parent_node`, `children_nodes`, `shadow_roots` and
	`content_document` properties, so the tree holds no reference cycles between nodes.
	"""

	node_id: int
	backend_node_id: int

	node_type: NodeType
	node_name: str
	"""Only applicable for `NodeType.ELEMENT_NODE`"""
	node_value: str = ''
	"""this is where the value from `NodeType.TEXT_NODE` is stored usually"""
	attributes: dict[str, str] = field(default_factory=dict)
	is_scrollable: bool | None = None
	"""Scrollability reported by CDP. See `is_actually_scrollable` for the heuristic version."""
	is_visible: bool | None = None
	"""Whether the node is visible according to all enclosing frames."""

	absolute_position: DOMRect | None = None
	"""Position in the top-level document, iframe offsets and scroll included."""

	target_id: str = ''
	frame_id: str | None = None
	session_id: str | None = None
	shadow_root_type: str | None = None

	ax_node: EnhancedAXNode | None = None
	snapshot_node: EnhancedSnapshotNode | None = None

	parent_id: int | None = None
	children_ids: list[int] | None = None
	shadow_root_ids: list[int] | None = None
	content_document_id: int | None = None

	element_index: int | None = None
	"""Interactive index stamped by the last serialization, if any."""

	uuid: str = field(default_factory=uuid7str)
	tree: 'EnhancedDOMTree | None' = field(default=None, repr=False)

	# region - tree navigation

	def _resolve(self, node_id: int | None) -> 'EnhancedDOMTreeNode | None':
		if node_id is None or self.tree is None:
			return None
		return self.tree.get(node_id)

	def _resolve_many(self, node_ids: list[int] | None) -> list['EnhancedDOMTreeNode'] | None:
		if node_ids is None or self.tree is None:
			return None
		return [self.tree.nodes[node_id] for node_id in node_ids if node_id in self.tree.nodes]

	@property
	def parent_node(self) -> 'EnhancedDOMTreeNode | None':
		return self._resolve(self.parent_id)

	@property
	def children_nodes(self) -> list['EnhancedDOMTreeNode'] | None:
		return self._resolve_many(self.children_ids)

	@property
	def shadow_roots(self) -> list['EnhancedDOMTreeNode'] | None:
		return self._resolve_many(self.shadow_root_ids)

	@property
	def content_document(self) -> 'EnhancedDOMTreeNode | None':
		return self._resolve(self.content_document_id)

	@property
	def parent(self) -> 'EnhancedDOMTreeNode | None':
		return self.parent_node

	@property
	def children(self) -> list['EnhancedDOMTreeNode']:
		return self.children_nodes or []

	@property
	def children_and_shadow_roots(self) -> list['EnhancedDOMTreeNode']:
		"""
		Returns all children nodes, including shadow roots
		"""
		children = list(self.children_nodes or [])
		if self.shadow_roots:
			children.extend(self.shadow_roots)
		return children

	# endregion

	@property
	def tag_name(self) -> str:
		return self.node_name.lower()

	@property
	def xpath(self) -> str:
		from pagetree.dom.geometry import generate_xpath

		return generate_xpath(self)

	@property
	def is_actually_scrollable(self) -> bool:
		from pagetree.dom.geometry import is_actually_scrollable

		return is_actually_scrollable(self)

	@property
	def should_show_scroll_info(self) -> bool:
		from pagetree.dom.geometry import should_show_scroll_info

		return should_show_scroll_info(self)

	@property
	def scroll_info(self) -> dict[str, Any] | None:
		from pagetree.dom.geometry import get_scroll_info

		return get_scroll_info(self)

	def get_scroll_info_text(self) -> str:
		from pagetree.dom.geometry import get_scroll_info_text

		return get_scroll_info_text(self)

	def get_all_children_text(self, max_depth: int = -1) -> str:
		text_parts = []

		def collect_text(node: EnhancedDOMTreeNode, current_depth: int) -> None:
			if max_depth != -1 and current_depth > max_depth:
				return

			if node.node_type == NodeType.TEXT_NODE:
				text_parts.append(node.node_value)
			elif node.node_type == NodeType.ELEMENT_NODE:
				for child in node.children_and_shadow_roots:
					collect_text(child, current_depth + 1)
			elif node.node_type == NodeType.DOCUMENT_FRAGMENT_NODE:
				for child in node.children:
					collect_text(child, current_depth + 1)

		collect_text(self, 0)
		return '\n'.join(part.strip() for part in text_parts if part and part.strip())

	def llm_representation(self, max_text_length: int = 100) -> str:
		"""
		Token friendly representation of the node, used in the LLM
		"""
		return f'<{self.tag_name}>{cap_text_length(self.get_all_children_text(), max_text_length) or ""}'

	def get_meaningful_text_for_llm(self) -> str:
		"""Text an action layer can show for this element: a labelling attribute, else its text content."""
		for attribute_name in ('value', 'aria-label', 'title', 'placeholder', 'alt'):
			value = self.attributes.get(attribute_name)
			if value and value.strip():
				return value.strip()
		return self.get_all_children_text().strip()

	def __json__(self) -> dict:
		"""Serializes the node and its descendants to a dictionary, omitting parent references."""
		content_document = self.content_document
		return {
			'node_id': self.node_id,
			'backend_node_id': self.backend_node_id,
			'node_type': self.node_type.name,
			'node_name': self.node_name,
			'node_value': self.node_value,
			'is_visible': self.is_visible,
			'attributes': self.attributes,
			'is_scrollable': self.is_scrollable,
			'session_id': self.session_id,
			'target_id': self.target_id,
			'frame_id': self.frame_id,
			'element_index': self.element_index,
			'content_document': content_document.__json__() if content_document else None,
			'shadow_root_type': self.shadow_root_type,
			'ax_node': asdict(self.ax_node) if self.ax_node else None,
			'snapshot_node': asdict(self.snapshot_node) if self.snapshot_node else None,
			'shadow_roots': [r.__json__() for r in self.shadow_roots or []],
			'children_nodes': [c.__json__() for c in self.children],
		}

	def __repr__(self) -> str:
		"""
		@DEV ! don't display this to the LLM, it's SUPER long
		"""
		attributes = ', '.join(f'{k}={v}' for k, v in self.attributes.items())
		num_children = len(self.children_ids or [])
		return (
			f'<{self.tag_name} {attributes} is_scrollable={self.is_scrollable} '
			f'num_children={num_children} >{self.node_value}</{self.tag_name}>'
		)

	def __str__(self) -> str:
		return f'[<{self.tag_name}>#{self.frame_id[-4:] if self.frame_id else "?"}:{self.backend_node_id}]'


class EnhancedDOMTree:
	"""Arena owning every node of one capture, addressed by `node_id`."""

	def __init__(self, target_id: str = ''):
		self.target_id = target_id
		self.nodes: dict[int, EnhancedDOMTreeNode] = {}
		self.root_id: int | None = None

	def add_node(self, node: EnhancedDOMTreeNode) -> EnhancedDOMTreeNode:
		if node.node_id in self.nodes:
			raise MalformedDOMTreeError(f'Duplicate node_id {node.node_id} in one capture')
		node.tree = self
		self.nodes[node.node_id] = node
		if self.root_id is None:
			self.root_id = node.node_id
		return node

	def get(self, node_id: int) -> EnhancedDOMTreeNode | None:
		return self.nodes.get(node_id)

	def link_child(self, parent: EnhancedDOMTreeNode, child: EnhancedDOMTreeNode) -> None:
		child.parent_id = parent.node_id
		if parent.children_ids is None:
			parent.children_ids = []
		parent.children_ids.append(child.node_id)

	def link_shadow_root(self, host: EnhancedDOMTreeNode, shadow_root: EnhancedDOMTreeNode) -> None:
		shadow_root.parent_id = host.node_id
		if host.shadow_root_ids is None:
			host.shadow_root_ids = []
		host.shadow_root_ids.append(shadow_root.node_id)

	def set_content_document(self, frame: EnhancedDOMTreeNode, document: EnhancedDOMTreeNode) -> None:
		document.parent_id = frame.node_id
		frame.content_document_id = document.node_id

	@property
	def root(self) -> EnhancedDOMTreeNode | None:
		if self.root_id is None:
			return None
		return self.nodes.get(self.root_id)

	def __len__(self) -> int:
		return len(self.nodes)

	def __iter__(self) -> 'Iterator[EnhancedDOMTreeNode]':
		return iter(self.nodes.values())


@dataclass(slots=True)
class PropagatingBounds:
	"""Track bounds that propagate from parent elements to filter children."""

	tag: str  # The tag that started propagation ('a' or 'button')
	bounds: DOMRect  # The bounding box
	node_id: int  # Node ID for debugging
	depth: int  # How deep in tree this started (for debugging)


@dataclass(slots=True)
class SimplifiedNode:
	"""Simplified tree node for optimization."""

	original_node: EnhancedDOMTreeNode
	children: list['SimplifiedNode'] = field(default_factory=list)

	should_display: bool = True
	interactive_index: int | None = None
	is_new: bool = False
	excluded_by_parent: bool = False  # set by bounding box filtering

	def __json__(self) -> dict:
		original_node_json = self.original_node.__json__()
		# children are already represented by the simplified tree itself
		original_node_json.pop('children_nodes', None)
		original_node_json.pop('shadow_roots', None)
		return {
			'should_display': self.should_display,
			'interactive_index': self.interactive_index,
			'is_new': self.is_new,
			'excluded_by_parent': self.excluded_by_parent,
			'original_node': original_node_json,
			'children': [c.__json__() for c in self.children],
		}


DOMSelectorMap = dict[int, EnhancedDOMTreeNode]


@dataclass
class SerializedDOMState:
	_root: SimplifiedNode | None
	"""Not meant to be used directly, use `llm_representation` instead"""

	selector_map: DOMSelectorMap
	include_attributes: list[str] | None = None

	def llm_representation(
		self,
		include_attributes: list[str] | None = None,
	) -> str:
		"""Kinda ugly, but leaving this as an internal method because include_attributes are a parameter on the agent, so we need to leave it as a 2 step process"""
		from pagetree.dom.serializer.serializer import DOMTreeSerializer

		if not self._root:
			return 'Empty DOM tree (you might have to wait for the page to load)'

		include_attributes = include_attributes or self.include_attributes or DEFAULT_INCLUDE_ATTRIBUTES

		return DOMTreeSerializer.serialize_tree(self._root, include_attributes)


@dataclass
class TargetAllTrees:
	snapshot: CaptureSnapshotReturns
	dom_tree: GetDocumentReturns
	ax_tree: GetFullAXTreeReturns
	device_pixel_ratio: float
	cdp_timing: dict[str, float] = field(default_factory=dict)
