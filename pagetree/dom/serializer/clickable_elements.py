from pagetree.dom.views import EnhancedDOMTreeNode, NodeType

SEARCH_INDICATORS = {
	'search',
	'magnify',
	'glass',
	'lookup',
	'find',
	'query',
	'search-icon',
	'search-btn',
	'search-button',
	'searchbox',
}

INTERACTIVE_TAGS = {
	'button',
	'input',
	'select',
	'textarea',
	'a',
	'label',
	'details',
	'summary',
	'option',
	'optgroup',
}

INTERACTIVE_ATTRIBUTES = {
	# Event handlers
	'onclick',
	'onmousedown',
	'onmouseup',
	'onkeydown',
	'onkeyup',
	# Interactive attributes
	'tabindex',
}

INTERACTIVE_ROLES = {
	'button',
	'link',
	'menuitem',
	'option',
	'radio',
	'checkbox',
	'tab',
	'textbox',
	'combobox',
	'slider',
	'spinbutton',
	'search',
	'searchbox',
}

INTERACTIVE_AX_ROLES = INTERACTIVE_ROLES | {'listbox'}

ICON_ATTRIBUTES = {'class', 'role', 'onclick', 'data-action', 'aria-label'}


class ClickableElementDetector:
	@staticmethod
	def _is_large_iframe(node: EnhancedDOMTreeNode) -> bool:
		"""
		Iframes big enough to hold scrollable content.

		Returns:
			True if the iframe is wider and taller than 100px
		"""
		if not (node.snapshot_node and node.snapshot_node.bounds):
			return False
		bounds = node.snapshot_node.bounds
		return bounds.width > 100 and bounds.height > 100

	@staticmethod
	def _has_search_indicators(node: EnhancedDOMTreeNode) -> bool:
		"""Check class names, id and data-* values for search widgets (magnifier icons, search buttons)."""
		if not node.attributes:
			return False

		class_string = node.attributes.get('class', '').lower()
		if any(indicator in class_string for indicator in SEARCH_INDICATORS):
			return True

		element_id = node.attributes.get('id', '').lower()
		if any(indicator in element_id for indicator in SEARCH_INDICATORS):
			return True

		for attr_name, attr_value in node.attributes.items():
			if attr_name.startswith('data-') and any(indicator in attr_value.lower() for indicator in SEARCH_INDICATORS):
				return True

		return False

	@staticmethod
	def _check_accessibility_properties(node: EnhancedDOMTreeNode) -> bool | None:
		"""
		Accessibility property checks, direct clear indicators only.

		Returns:
			True if interactive based on accessibility properties
			False if a property rules interactivity out (disabled, hidden)
			None if no conclusive determination
		"""
		if not (node.ax_node and node.ax_node.properties):
			return None

		for prop in node.ax_node.properties:
			try:
				# EXCLUSION RULES
				if prop.name == 'disabled' and prop.value:
					return False
				if prop.name == 'hidden' and prop.value:
					return False

				# Direct interaction capabilities
				if prop.name in ['focusable', 'editable', 'settable'] and prop.value:
					return True

				# Widget states (only interactive elements have these)
				if prop.name in ['checked', 'expanded', 'pressed', 'selected']:
					return True

				# Form/input related
				if prop.name in ['required', 'autocomplete'] and prop.value:
					return True

				if prop.name == 'keyshortcuts' and prop.value:
					return True

			except (AttributeError, ValueError):
				# Skip properties we can't process
				continue

		return None

	@staticmethod
	def _has_event_handlers_or_interactive_attributes(node: EnhancedDOMTreeNode) -> bool:
		"""
		Check for event handlers, tabindex or an interactive ARIA role attribute.

		Returns:
			True if node has event handlers or interactive attributes
		"""
		if not node.attributes:
			return False

		if any(attr in node.attributes for attr in INTERACTIVE_ATTRIBUTES):
			return True

		return node.attributes.get('role') in INTERACTIVE_ROLES

	@staticmethod
	def _is_interactive_icon(node: EnhancedDOMTreeNode) -> bool:
		"""Small (10-50px) elements carrying a class, role, handler or label are likely icons."""
		if not (node.snapshot_node and node.snapshot_node.bounds and node.attributes):
			return False
		bounds = node.snapshot_node.bounds
		if not (10 <= bounds.width <= 50 and 10 <= bounds.height <= 50):
			return False
		return any(attr in node.attributes for attr in ICON_ATTRIBUTES)

	@staticmethod
	def _has_interactive_cursor(node: EnhancedDOMTreeNode) -> bool:
		if not (node.snapshot_node and node.snapshot_node.cursor_style):
			return False
		return node.snapshot_node.cursor_style == 'pointer'

	@staticmethod
	def is_interactive(node: EnhancedDOMTreeNode) -> bool:
		"""Check if this node is clickable/interactive using enhanced scoring."""

		# Skip non-element nodes
		if node.node_type != NodeType.ELEMENT_NODE:
			return False

		# remove html and body nodes
		if node.tag_name in {'html', 'body'}:
			return False

		if node.tag_name == 'iframe' and ClickableElementDetector._is_large_iframe(node):
			return True

		# Zero-size elements are not rejected here, visibility is decided separately

		if ClickableElementDetector._has_search_indicators(node):
			return True

		accessibility_result = ClickableElementDetector._check_accessibility_properties(node)
		if accessibility_result is not None:
			return accessibility_result

		if node.tag_name in INTERACTIVE_TAGS:
			return True

		if ClickableElementDetector._has_event_handlers_or_interactive_attributes(node):
			return True

		# Accessibility tree roles (fallback check)
		if node.ax_node and node.ax_node.role in INTERACTIVE_AX_ROLES:
			return True

		if ClickableElementDetector._is_interactive_icon(node):
			return True

		# Final fallback for cases Chrome missed
		if ClickableElementDetector._has_interactive_cursor(node):
			return True

		return False
