import logging
import time

from cdp_use.cdp.accessibility.types import AXNode
from cdp_use.cdp.dom.types import Node

from pagetree.config import DOMSerializerConfig
from pagetree.dom.enhanced_snapshot import build_snapshot_lookup
from pagetree.dom.serializer.serializer import DOMTreeSerializer
from pagetree.dom.views import (
	DOMRect,
	EnhancedAXNode,
	EnhancedAXProperty,
	EnhancedDOMTree,
	EnhancedDOMTreeNode,
	EnhancedSnapshotNode,
	NodeType,
	SerializedDOMState,
	TargetAllTrees,
)
from pagetree.exceptions import MalformedDOMTreeError
from pagetree.utils import time_execution_sync

_REQUIRED_NODE_KEYS = ('nodeId', 'backendNodeId', 'nodeType', 'nodeName')


class DomService:
	"""
	Turns one atomic browser capture into an enhanced DOM tree and its serialized state.

	The capture itself (DOM.getDocument, Accessibility.getFullAXTree,
	DOMSnapshot.captureSnapshot and the device pixel ratio) is taken by the
	caller; everything here is synchronous and performs no I/O.
	"""

	def __init__(self, config: DOMSerializerConfig | None = None, logger: logging.Logger | None = None):
		self.config = config or DOMSerializerConfig()
		self.logger = logger or logging.getLogger(__name__)

	@staticmethod
	def _build_enhanced_ax_node(ax_node: AXNode) -> EnhancedAXNode:
		properties: list[EnhancedAXProperty] | None = None
		if 'properties' in ax_node and ax_node['properties']:
			properties = []
			for prop in ax_node['properties']:
				try:
					properties.append(EnhancedAXProperty(name=prop['name'], value=prop.get('value', {}).get('value')))
				except (KeyError, AttributeError, TypeError):
					# malformed property records are skipped, not fatal
					continue

		return EnhancedAXNode(
			ax_node_id=ax_node.get('nodeId', ''),
			ignored=bool(ax_node.get('ignored', False)),
			role=(ax_node.get('role') or {}).get('value'),
			name=(ax_node.get('name') or {}).get('value'),
			description=(ax_node.get('description') or {}).get('value'),
			properties=properties,
			child_ids=ax_node.get('childIds'),
		)

	@classmethod
	def is_element_visible_according_to_all_parents(
		cls, node: EnhancedDOMTreeNode, html_frames: list[EnhancedDOMTreeNode]
	) -> bool:
		"""Check if the element is visible according to all its parent HTML frames."""

		if not node.snapshot_node:
			return False

		computed_styles = node.snapshot_node.computed_styles or {}

		display = computed_styles.get('display', '').lower()
		visibility = computed_styles.get('visibility', '').lower()
		opacity = computed_styles.get('opacity', '1')

		if display == 'none' or visibility == 'hidden':
			return False

		try:
			if float(opacity) <= 0:
				return False
		except (ValueError, TypeError):
			pass

		# Start with the element's local bounds (in its own frame's coordinate system)
		current_bounds = node.snapshot_node.bounds
		if not current_bounds:
			return False

		current_bounds = DOMRect(
			x=current_bounds.x, y=current_bounds.y, width=current_bounds.width, height=current_bounds.height
		)

		# Innermost frame first
		for frame in reversed(html_frames):
			if (
				frame.node_type == NodeType.ELEMENT_NODE
				and frame.tag_name == 'iframe'
				and frame.snapshot_node
				and frame.snapshot_node.bounds
			):
				iframe_bounds = frame.snapshot_node.bounds
				current_bounds.x += iframe_bounds.x
				current_bounds.y += iframe_bounds.y

			if (
				frame.node_type == NodeType.ELEMENT_NODE
				and frame.tag_name == 'html'
				and frame.snapshot_node
				and frame.snapshot_node.scrollRects
				and frame.snapshot_node.clientRects
			):
				viewport_right = frame.snapshot_node.clientRects.width
				viewport_bottom = frame.snapshot_node.clientRects.height

				# Position relative to the frame's viewport
				adjusted_x = current_bounds.x - frame.snapshot_node.scrollRects.x
				adjusted_y = current_bounds.y - frame.snapshot_node.scrollRects.y

				frame_intersects = (
					adjusted_x < viewport_right
					and adjusted_x + current_bounds.width > 0
					and adjusted_y < viewport_bottom
					and adjusted_y + current_bounds.height > 0
				)
				if not frame_intersects:
					return False

				current_bounds.x = adjusted_x
				current_bounds.y = adjusted_y

		return True

	@time_execution_sync('--build_enhanced_tree')
	def build_enhanced_tree(self, trees: TargetAllTrees | None, target_id: str = '') -> EnhancedDOMTree:
		"""Merge the DOM, AX and snapshot captures into one arena-backed tree.

		Raises:
			MalformedDOMTreeError: the capture is missing, a DOM node lacks its identity fields,
				or a nodeId appears twice.
		"""
		if trees is None or not trees.dom_tree or not trees.dom_tree.get('root'):
			raise MalformedDOMTreeError('Capture has no DOM tree root')

		ax_tree_lookup: dict[int, AXNode] = {
			ax_node['backendDOMNodeId']: ax_node
			for ax_node in (trees.ax_tree or {}).get('nodes', [])
			if 'backendDOMNodeId' in ax_node
		}
		snapshot_lookup = build_snapshot_lookup(trees.snapshot, trees.device_pixel_ratio)

		tree = EnhancedDOMTree(target_id=target_id)
		self._construct_enhanced_node(
			trees.dom_tree['root'],
			html_frames=[],
			total_frame_offset=DOMRect(x=0.0, y=0.0, width=0.0, height=0.0),
			ax_tree_lookup=ax_tree_lookup,
			snapshot_lookup=snapshot_lookup,
			tree=tree,
		)

		self.logger.debug(
			f'Built enhanced DOM tree: {len(tree)} nodes, {len(ax_tree_lookup)} AX nodes, {len(snapshot_lookup)} snapshot nodes'
		)
		return tree

	def _construct_enhanced_node(
		self,
		node: Node,
		html_frames: list[EnhancedDOMTreeNode],
		total_frame_offset: DOMRect,
		ax_tree_lookup: dict[int, AXNode],
		snapshot_lookup: dict[int, EnhancedSnapshotNode],
		tree: EnhancedDOMTree,
	) -> EnhancedDOMTreeNode:
		"""Recursively construct enhanced DOM tree nodes into the arena."""
		missing = [key for key in _REQUIRED_NODE_KEYS if key not in node]
		if missing:
			raise MalformedDOMTreeError(f'DOM node record is missing {", ".join(missing)}', node=dict(node))

		if tree.get(node['nodeId']) is not None:
			raise MalformedDOMTreeError(f'Duplicate nodeId {node["nodeId"]} in one capture', node=dict(node))

		try:
			node_type = NodeType(node['nodeType'])
		except ValueError as e:
			raise MalformedDOMTreeError(f'Unknown DOM node type {node["nodeType"]!r}', node=dict(node)) from e

		# Copy so sibling subtrees do not share the accumulated offset
		total_frame_offset = DOMRect(
			x=total_frame_offset.x,
			y=total_frame_offset.y,
			width=total_frame_offset.width,
			height=total_frame_offset.height,
		)

		ax_node = ax_tree_lookup.get(node['backendNodeId'])
		enhanced_ax_node = self._build_enhanced_ax_node(ax_node) if ax_node else None

		attributes: dict[str, str] = {}
		raw_attributes = node.get('attributes') or []
		for i in range(0, len(raw_attributes) - 1, 2):
			attributes[raw_attributes[i]] = raw_attributes[i + 1]

		snapshot_data = snapshot_lookup.get(node['backendNodeId'])
		absolute_position = None
		if snapshot_data and snapshot_data.bounds:
			absolute_position = DOMRect(
				x=snapshot_data.bounds.x + total_frame_offset.x,
				y=snapshot_data.bounds.y + total_frame_offset.y,
				width=snapshot_data.bounds.width,
				height=snapshot_data.bounds.height,
			)

		dom_tree_node = tree.add_node(
			EnhancedDOMTreeNode(
				node_id=node['nodeId'],
				backend_node_id=node['backendNodeId'],
				node_type=node_type,
				node_name=node['nodeName'],
				node_value=node.get('nodeValue') or '',
				attributes=attributes,
				is_scrollable=node.get('isScrollable'),
				is_visible=None,
				absolute_position=absolute_position,
				target_id=tree.target_id,
				frame_id=node.get('frameId'),
				shadow_root_type=node.get('shadowRootType'),
				ax_node=enhanced_ax_node,
				snapshot_node=snapshot_data,
			)
		)

		updated_html_frames = list(html_frames)
		if node_type == NodeType.ELEMENT_NODE and node['nodeName'] == 'HTML' and node.get('frameId') is not None:
			updated_html_frames.append(dom_tree_node)

			# Account for the frame's own scroll position
			if snapshot_data and snapshot_data.scrollRects:
				total_frame_offset.x -= snapshot_data.scrollRects.x
				total_frame_offset.y -= snapshot_data.scrollRects.y

		if dom_tree_node.tag_name == 'iframe' and snapshot_data and snapshot_data.bounds:
			updated_html_frames.append(dom_tree_node)
			total_frame_offset.x += snapshot_data.bounds.x
			total_frame_offset.y += snapshot_data.bounds.y

		if node.get('contentDocument'):
			content_document = self._construct_enhanced_node(
				node['contentDocument'], updated_html_frames, total_frame_offset, ax_tree_lookup, snapshot_lookup, tree
			)
			tree.set_content_document(dom_tree_node, content_document)

		for shadow_root in node.get('shadowRoots') or []:
			shadow_root_node = self._construct_enhanced_node(
				shadow_root, updated_html_frames, total_frame_offset, ax_tree_lookup, snapshot_lookup, tree
			)
			tree.link_shadow_root(dom_tree_node, shadow_root_node)

		if 'children' in node:
			dom_tree_node.children_ids = []
			for child in node['children'] or []:
				child_node = self._construct_enhanced_node(
					child, updated_html_frames, total_frame_offset, ax_tree_lookup, snapshot_lookup, tree
				)
				tree.link_child(dom_tree_node, child_node)

		dom_tree_node.is_visible = self.is_element_visible_according_to_all_parents(dom_tree_node, html_frames)

		return dom_tree_node

	def get_serialized_dom_tree(
		self,
		trees: TargetAllTrees,
		previous_cached_state: SerializedDOMState | None = None,
		target_id: str = '',
	) -> tuple[SerializedDOMState, EnhancedDOMTree, dict[str, float]]:
		"""Get the serialized DOM tree representation for LLM consumption.

		Returns:
			(serialized_dom_state, enhanced_dom_tree, timing_info)
		"""
		start = time.time()
		enhanced_dom_tree = self.build_enhanced_tree(trees, target_id=target_id)
		build_time = time.time() - start

		serialized_dom_state, serializer_timing = DOMTreeSerializer(
			enhanced_dom_tree.root,
			previous_cached_state,
			config=self.config,
		).serialize_accessible_elements()

		timing_info = {**trees.cdp_timing, 'build_enhanced_tree': build_time, **serializer_timing}
		timing_info['get_serialized_dom_tree_total'] = time.time() - start

		self.logger.debug(
			f'Serialized DOM: {len(serialized_dom_state.selector_map)} interactive elements '
			f'in {timing_info["get_serialized_dom_tree_total"]:.3f}s'
		)
		return serialized_dom_state, enhanced_dom_tree, timing_info
