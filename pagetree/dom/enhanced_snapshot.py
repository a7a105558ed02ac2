"""
Enhanced snapshot processing for DOM tree extraction.

Stateless functions for parsing CDP DOMSnapshot data to extract visibility,
clickability, cursor styles and other layout information.
"""

import logging

from cdp_use.cdp.domsnapshot.commands import CaptureSnapshotReturns

from pagetree.dom.views import DOMRect, EnhancedSnapshotNode

logger = logging.getLogger(__name__)

# Only the ESSENTIAL computed styles for interactivity and visibility detection.
# Order matters: CDP returns style values positionally for the names requested here.
REQUIRED_COMPUTED_STYLES = [
	'display',
	'visibility',
	'opacity',
	'position',
	'z-index',
	'pointer-events',
	'cursor',
	'overflow',
	'overflow-x',
	'overflow-y',
	'width',
	'height',
	'top',
	'left',
	'right',
	'bottom',
	'transform',
	'clip',
	'clip-path',
	'user-select',
	'background-color',
	'color',
	'border',
	'margin',
	'padding',
]


def _parse_rare_boolean_data(rare_data: dict, index: int) -> bool | None:
	"""Parse rare boolean data from snapshot - returns True if index is in the rare data."""
	indices = rare_data.get('index')
	if indices is None:
		return None
	return index in indices


def _parse_computed_styles(strings: list[str], style_indices: list[int]) -> dict[str, str]:
	"""Parse computed styles from layout tree using string indices."""
	styles = {}
	for i, style_index in enumerate(style_indices):
		if i < len(REQUIRED_COMPUTED_STYLES) and 0 <= style_index < len(strings):
			styles[REQUIRED_COMPUTED_STYLES[i]] = strings[style_index]
	return styles


def _parse_rect(values: list[float] | None, scale: float = 1.0) -> DOMRect | None:
	if not values or len(values) < 4:
		return None
	x, y, width, height = values[:4]
	return DOMRect(x=x / scale, y=y / scale, width=width / scale, height=height / scale)


def build_snapshot_lookup(
	snapshot: CaptureSnapshotReturns,
	device_pixel_ratio: float = 1.0,
) -> dict[int, EnhancedSnapshotNode]:
	"""Build a lookup table of backend node ID to enhanced snapshot data with everything calculated upfront."""
	snapshot_lookup: dict[int, EnhancedSnapshotNode] = {}

	if not snapshot or not snapshot.get('documents'):
		return snapshot_lookup

	if not device_pixel_ratio or device_pixel_ratio <= 0:
		logger.debug(f'Invalid device pixel ratio {device_pixel_ratio!r}, falling back to 1.0')
		device_pixel_ratio = 1.0

	strings = snapshot.get('strings') or []

	for document in snapshot['documents']:
		nodes = document.get('nodes') or {}
		layout = document.get('layout') or {}

		# Map each snapshot node index to its first layout entry
		layout_index_by_node_index: dict[int, int] = {}
		for layout_idx, node_index in enumerate(layout.get('nodeIndex') or []):
			layout_index_by_node_index.setdefault(node_index, layout_idx)

		bounds = layout.get('bounds') or []
		styles = layout.get('styles') or []
		paint_orders = layout.get('paintOrders') or []
		client_rects = layout.get('clientRects') or []
		scroll_rects = layout.get('scrollRects') or []
		stacking_contexts = (layout.get('stackingContexts') or {}).get('index') or []
		is_clickable_data = nodes.get('isClickable')

		for snapshot_index, backend_node_id in enumerate(nodes.get('backendNodeId') or []):
			is_clickable = None
			if is_clickable_data:
				is_clickable = _parse_rare_boolean_data(is_clickable_data, snapshot_index)

			cursor_style = None
			bounding_box = None
			computed_styles: dict[str, str] = {}
			paint_order = None
			client_rect = None
			scroll_rect = None
			stacking_context = None

			layout_idx = layout_index_by_node_index.get(snapshot_index)
			if layout_idx is not None:
				# CDP coordinates are in device pixels, convert to CSS pixels
				if layout_idx < len(bounds):
					bounding_box = _parse_rect(bounds[layout_idx], device_pixel_ratio)

				if layout_idx < len(styles):
					computed_styles = _parse_computed_styles(strings, styles[layout_idx])
					cursor_style = computed_styles.get('cursor')

				if layout_idx < len(paint_orders):
					paint_order = paint_orders[layout_idx]

				if layout_idx < len(client_rects):
					client_rect = _parse_rect(client_rects[layout_idx])

				if layout_idx < len(scroll_rects):
					scroll_rect = _parse_rect(scroll_rects[layout_idx])

				if layout_idx < len(stacking_contexts):
					stacking_context = stacking_contexts[layout_idx]

			snapshot_lookup[backend_node_id] = EnhancedSnapshotNode(
				is_clickable=is_clickable,
				cursor_style=cursor_style,
				bounds=bounding_box,
				clientRects=client_rect,
				scrollRects=scroll_rect,
				computed_styles=computed_styles if computed_styles else None,
				paint_order=paint_order,
				stacking_contexts=stacking_context,
			)

	return snapshot_lookup
