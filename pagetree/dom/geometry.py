"""
Geometry helpers shared by every serialization stage.

All functions are pure and tolerate missing snapshot data: an element without
rects or styles is treated as not scrollable and gets no scroll info.
"""

import math
from typing import Any

from pagetree.dom.views import DOMRect, EnhancedDOMTreeNode, NodeType

SCROLLABLE_OVERFLOW_VALUES = {'auto', 'scroll', 'overlay'}

# Containers considered scrollable when content overflows but no computed styles were captured
COMMON_SCROLLABLE_TAGS = {'div', 'main', 'section', 'article', 'aside', 'body', 'html'}


def containment_ratio(child: DOMRect, parent: DOMRect) -> float:
	"""Fraction of the child's area lying inside the parent rectangle. Zero-area children give 0.0."""
	child_area = child.area
	if child_area == 0:
		return 0.0

	x_overlap = max(0.0, min(child.x + child.width, parent.x + parent.width) - max(child.x, parent.x))
	y_overlap = max(0.0, min(child.y + child.height, parent.y + parent.height) - max(child.y, parent.y))

	return (x_overlap * y_overlap) / child_area


def is_actually_scrollable(node: EnhancedDOMTreeNode) -> bool:
	"""
	Enhanced scroll detection that combines CDP detection with CSS analysis.

	This detects scrollable elements that Chrome's CDP might miss, which is common
	in iframes and dynamically sized containers.
	"""
	if node.is_scrollable:
		return True

	if not node.snapshot_node:
		return False

	scroll_rects = node.snapshot_node.scrollRects
	client_rects = node.snapshot_node.clientRects
	if not scroll_rects or not client_rects:
		return False

	# +1 for rounding
	has_vertical_scroll = scroll_rects.height > client_rects.height + 1
	has_horizontal_scroll = scroll_rects.width > client_rects.width + 1
	if not (has_vertical_scroll or has_horizontal_scroll):
		return False

	styles = node.snapshot_node.computed_styles
	if styles:
		overflow = (styles.get('overflow') or 'visible').lower()
		overflow_x = (styles.get('overflow-x') or overflow).lower()
		overflow_y = (styles.get('overflow-y') or overflow).lower()
		return (
			overflow in SCROLLABLE_OVERFLOW_VALUES
			or overflow_x in SCROLLABLE_OVERFLOW_VALUES
			or overflow_y in SCROLLABLE_OVERFLOW_VALUES
		)

	# No CSS info, only trust the usual container elements
	return node.tag_name in COMMON_SCROLLABLE_TAGS


def should_show_scroll_info(node: EnhancedDOMTreeNode) -> bool:
	"""
	Show scroll info only for scrollable elements without a scrollable parent, to avoid nested scroll spam.

	Iframes always show it since Chrome does not reliably report their scrollability.
	"""
	if node.tag_name == 'iframe':
		return True

	if not (node.is_scrollable or is_actually_scrollable(node)):
		return False

	# document roots, including iframe content documents
	if node.tag_name in {'body', 'html'}:
		return True

	parent = node.parent_node
	if parent and (parent.is_scrollable or is_actually_scrollable(parent)):
		return False

	return True


def get_scroll_info(node: EnhancedDOMTreeNode) -> dict[str, Any] | None:
	"""Calculate scroll position and extents for a scrollable element, using the visible height as the page unit."""
	if not is_actually_scrollable(node) or not node.snapshot_node:
		return None

	scroll_rects = node.snapshot_node.scrollRects
	client_rects = node.snapshot_node.clientRects
	if not scroll_rects or not client_rects:
		return None

	scroll_top = scroll_rects.y
	scroll_left = scroll_rects.x

	scrollable_height = scroll_rects.height
	scrollable_width = scroll_rects.width

	visible_height = client_rects.height
	visible_width = client_rects.width

	content_above = max(0, scroll_top)
	content_below = max(0, scrollable_height - visible_height - scroll_top)
	content_left = max(0, scroll_left)
	content_right = max(0, scrollable_width - visible_width - scroll_left)

	vertical_scroll_percentage = 0.0
	horizontal_scroll_percentage = 0.0

	if scrollable_height > visible_height:
		max_scroll_top = scrollable_height - visible_height
		vertical_scroll_percentage = (scroll_top / max_scroll_top) * 100 if max_scroll_top > 0 else 0.0

	if scrollable_width > visible_width:
		max_scroll_left = scrollable_width - visible_width
		horizontal_scroll_percentage = (scroll_left / max_scroll_left) * 100 if max_scroll_left > 0 else 0.0

	pages_above = content_above / visible_height if visible_height > 0 else 0
	pages_below = content_below / visible_height if visible_height > 0 else 0
	total_pages = scrollable_height / visible_height if visible_height > 0 else 1

	return {
		'scroll_top': scroll_top,
		'scroll_left': scroll_left,
		'scrollable_height': scrollable_height,
		'scrollable_width': scrollable_width,
		'visible_height': visible_height,
		'visible_width': visible_width,
		'content_above': content_above,
		'content_below': content_below,
		'content_left': content_left,
		'content_right': content_right,
		'vertical_scroll_percentage': round(max(0.0, vertical_scroll_percentage), 1),
		'horizontal_scroll_percentage': round(max(0.0, horizontal_scroll_percentage), 1),
		'pages_above': round(pages_above, 1),
		'pages_below': round(pages_below, 1),
		'total_pages': round(total_pages, 1),
		'can_scroll_up': content_above > 0,
		'can_scroll_down': content_below > 0,
		'can_scroll_left': content_left > 0,
		'can_scroll_right': content_right > 0,
	}


def _find_html_in_content_document(node: EnhancedDOMTreeNode) -> EnhancedDOMTreeNode | None:
	content_document = node.content_document
	if not content_document:
		return None

	if content_document.tag_name == 'html':
		return content_document

	for child in content_document.children:
		if child.tag_name == 'html':
			return child

	return None


def _round_half_up(value: float) -> int:
	# Halves round up: 12.5 -> 13
	return math.floor(value + 0.5)


def get_scroll_info_text(node: EnhancedDOMTreeNode) -> str:
	"""Get human-readable scroll information text for this element."""
	if node.tag_name == 'iframe':
		html_node = _find_html_in_content_document(node)
		if html_node:
			info = get_scroll_info(html_node)
			if info:
				pages_above = info['pages_above']
				pages_below = info['pages_below']
				vertical_percentage = _round_half_up(info['vertical_scroll_percentage'])
				if pages_above > 0 or pages_below > 0:
					return f'scroll: {pages_above:.1f}↑ {pages_below:.1f}↓ {vertical_percentage}%'
		return 'scroll'

	info = get_scroll_info(node)
	if not info:
		return ''

	parts = []
	if info['scrollable_height'] > info['visible_height']:
		parts.append(f'{info["pages_above"]:.1f} pages above, {info["pages_below"]:.1f} pages below')

	if info['scrollable_width'] > info['visible_width']:
		parts.append(f'horizontal {_round_half_up(info["horizontal_scroll_percentage"])}%')

	return ' '.join(parts)


def _get_element_position(element: EnhancedDOMTreeNode) -> int:
	"""1-based position among same-tag element siblings, or 0 when the element is the only one of its tag."""
	parent = element.parent_node
	if not parent:
		return 0

	same_tag_siblings = [
		sibling
		for sibling in parent.children
		if sibling.node_type == NodeType.ELEMENT_NODE and sibling.tag_name == element.tag_name
	]
	if len(same_tag_siblings) <= 1:
		return 0

	for position, sibling in enumerate(same_tag_siblings, start=1):
		if sibling.node_id == element.node_id:
			return position
	return 0


def generate_xpath(node: EnhancedDOMTreeNode) -> str:
	"""Generate XPath for this DOM node, passing through shadow roots and stopping at iframe boundaries."""
	segments = []
	current = node

	while current and current.node_type in (NodeType.ELEMENT_NODE, NodeType.DOCUMENT_FRAGMENT_NODE):
		# shadow roots are not part of the XPath
		if current.node_type == NodeType.DOCUMENT_FRAGMENT_NODE:
			current = current.parent_node
			continue

		parent = current.parent_node
		if parent and parent.tag_name == 'iframe':
			break

		position = _get_element_position(current)
		xpath_index = f'[{position}]' if position > 0 else ''
		segments.insert(0, f'{current.tag_name}{xpath_index}')

		current = parent

	return '/'.join(segments)
