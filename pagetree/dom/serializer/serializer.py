# @file purpose: Serializes enhanced DOM trees to string format for LLM consumption

import logging
import time

from pagetree.config import DOMSerializerConfig
from pagetree.dom.serializer.bounding_box import BoundingBoxFilter
from pagetree.dom.serializer.context import SerializationContext
from pagetree.dom.serializer.indexer import InteractiveIndexAssigner
from pagetree.dom.serializer.optimizer import TreeOptimizer
from pagetree.dom.serializer.simplifier import TreeSimplifier
from pagetree.dom.views import EnhancedDOMTreeNode, NodeType, SerializedDOMState, SimplifiedNode
from pagetree.utils import cap_text_length, time_execution_sync

logger = logging.getLogger(__name__)

MAX_ATTRIBUTE_VALUE_LENGTH = 100

# Removed when equal (case-insensitive) to the element's own text
ATTRS_TO_REMOVE_IF_TEXT_MATCHES = ['aria-label', 'placeholder', 'title', 'ax_name']


class DOMTreeSerializer:
	"""Serializes enhanced DOM trees to string format."""

	def __init__(
		self,
		root_node: EnhancedDOMTreeNode | None,
		previous_cached_state: SerializedDOMState | None = None,
		config: DOMSerializerConfig | None = None,
	):
		self.root_node = root_node
		self.config = config or DOMSerializerConfig()
		self._previous_cached_selector_map = previous_cached_state.selector_map if previous_cached_state else None
		self.timing_info: dict[str, float] = {}

	@time_execution_sync('--serialize_accessible_elements')
	def serialize_accessible_elements(self) -> tuple[SerializedDOMState, dict[str, float]]:
		start_total = time.time()

		# Fresh state for every call
		context = SerializationContext(config=self.config, previous_selector_map=self._previous_cached_selector_map)
		self.timing_info = context.timing_info

		# Step 1: Create simplified tree (includes clickable element detection)
		start_step1 = time.time()
		simplified_tree = TreeSimplifier(context).simplify(self.root_node)
		self.timing_info['create_simplified_tree'] = time.time() - start_step1

		# Step 2: Optimize tree (remove unnecessary parents)
		start_step2 = time.time()
		optimized_tree = TreeOptimizer(context).optimize(simplified_tree)
		self.timing_info['optimize_tree'] = time.time() - start_step2

		# Step 3: Hide decorative children of links and buttons
		if context.config.enable_bbox_filtering and optimized_tree:
			start_step3 = time.time()
			BoundingBoxFilter(optimized_tree, context.config.containment_threshold).apply()
			self.timing_info['bbox_filtering'] = time.time() - start_step3

		# Step 4: Assign interactive indices to clickable elements
		start_step4 = time.time()
		InteractiveIndexAssigner(context).assign(optimized_tree)
		self.timing_info['assign_interactive_indices'] = time.time() - start_step4

		self.timing_info['serialize_accessible_elements_total'] = time.time() - start_total

		logger.debug(f'Assigned {len(context.selector_map)} interactive indices')
		state = SerializedDOMState(
			_root=optimized_tree,
			selector_map=context.selector_map,
			include_attributes=list(context.config.include_attributes),
		)
		return state, self.timing_info

	@staticmethod
	def serialize_tree(node: SimplifiedNode | None, include_attributes: list[str], depth: int = 0) -> str:
		"""Serialize the optimized tree to string format."""
		if not node:
			return ''

		formatted_text = []

		# Excluded and hidden nodes render nothing themselves, their children move up one level
		if node.excluded_by_parent or (
			node.original_node.node_type == NodeType.ELEMENT_NODE and not node.should_display
		):
			for child in node.children:
				child_text = DOMTreeSerializer.serialize_tree(child, include_attributes, depth)
				if child_text:
					formatted_text.append(child_text)
			return '\n'.join(formatted_text)

		depth_str = depth * '\t'
		next_depth = depth
		original = node.original_node

		if original.node_type == NodeType.ELEMENT_NODE:
			is_any_scrollable = original.is_scrollable or original.is_actually_scrollable
			is_iframe = original.tag_name == 'iframe'

			# Add element with interactive_index if clickable, scrollable, or iframe
			if node.interactive_index is not None or is_any_scrollable or is_iframe:
				next_depth += 1
				should_show_scroll = original.should_show_scroll_info

				attributes_html_str = DOMTreeSerializer._build_attributes_string(
					original, include_attributes, original.get_all_children_text()
				)

				if node.interactive_index is not None:
					# Clickable (and possibly scrollable)
					new_prefix = '*' if node.is_new else ''
					scroll_prefix = '|SCROLL+' if should_show_scroll else '['
					line = f'{depth_str}{new_prefix}{scroll_prefix}{node.interactive_index}]<{original.tag_name}'
				elif should_show_scroll and not is_iframe:
					# Scrollable container but not clickable
					line = f'{depth_str}|SCROLL|<{original.tag_name}'
				elif is_iframe:
					line = f'{depth_str}|IFRAME|<{original.tag_name}'
				else:
					line = f'{depth_str}<{original.tag_name}'

				if attributes_html_str:
					line += f' {attributes_html_str}'

				line += ' />'

				if should_show_scroll:
					scroll_info_text = original.get_scroll_info_text()
					if scroll_info_text:
						line += f' ({scroll_info_text})'

				formatted_text.append(line)

		elif original.node_type == NodeType.TEXT_NODE:
			is_visible = original.snapshot_node and original.is_visible
			clean_text = original.node_value.strip()
			if is_visible and len(clean_text) > 1:
				formatted_text.append(f'{depth_str}{clean_text}')

		for child in node.children:
			child_text = DOMTreeSerializer.serialize_tree(child, include_attributes, next_depth)
			if child_text:
				formatted_text.append(child_text)

		return '\n'.join(formatted_text)

	@staticmethod
	def _build_attributes_string(node: EnhancedDOMTreeNode, include_attributes: list[str], text: str) -> str:
		"""Build the attributes string for an element."""
		attributes_to_include = {
			key: str(value).strip()
			for key, value in node.attributes.items()
			if key in include_attributes and str(value).strip() != ''
		}

		# Include accessibility properties
		if node.ax_node and node.ax_node.properties:
			for prop in node.ax_node.properties:
				if prop.name not in include_attributes or prop.value is None:
					continue
				if isinstance(prop.value, bool):
					attributes_to_include[prop.name] = str(prop.value).lower()
				else:
					prop_value_str = str(prop.value).strip()
					if prop_value_str:
						attributes_to_include[prop.name] = prop_value_str

		if 'ax_name' in include_attributes and node.ax_node and node.ax_node.name and node.ax_node.name.strip():
			attributes_to_include['ax_name'] = node.ax_node.name.strip()

		if not attributes_to_include:
			return ''

		# Remove duplicate values
		ordered_keys = [key for key in dict.fromkeys(include_attributes) if key in attributes_to_include]

		if len(ordered_keys) > 1:
			keys_to_remove = set()
			seen_values = {}

			for key in ordered_keys:
				value = attributes_to_include[key]
				if len(value) > 5:
					if value in seen_values:
						keys_to_remove.add(key)
					else:
						seen_values[value] = key

			for key in keys_to_remove:
				del attributes_to_include[key]

		# Remove attributes that duplicate accessibility data
		role = (node.ax_node.role if node.ax_node else None) or node.attributes.get('role')
		if role and role.lower() == node.tag_name:
			attributes_to_include.pop('role', None)

		for attr in ATTRS_TO_REMOVE_IF_TEXT_MATCHES:
			if attributes_to_include.get(attr) and attributes_to_include[attr].strip().lower() == text.strip().lower():
				del attributes_to_include[attr]

		if attributes_to_include:
			# Keep the allow-list order in the output
			return ' '.join(
				f'{key}={cap_text_length(attributes_to_include[key], MAX_ATTRIBUTE_VALUE_LENGTH)}'
				for key in ordered_keys
				if key in attributes_to_include
			)

		return ''
