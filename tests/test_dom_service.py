"""
Tests for capture ingestion: snapshot lookup, enhanced tree construction,
visibility and the full capture-to-text path.
"""

import copy

import pytest

from pagetree.dom.enhanced_snapshot import build_snapshot_lookup
from pagetree.dom.service import DomService
from pagetree.dom.views import NodeType, TargetAllTrees
from pagetree.exceptions import MalformedDOMTreeError, PageTreeError

STRINGS = ['block', 'visible', '1', 'static', 'auto', 'auto', 'pointer', 'none', 'hidden', 'default']


def style_row(display: int = 0, visibility: int = 1, cursor: int = 9) -> list[int]:
	return [display, visibility, 2, 3, 4, 5, cursor]


def make_capture() -> TargetAllTrees:
	"""document > html > body > button[type=submit, aria-label="Buy now"] > "Buy" plus a hidden div."""
	dom_tree = {
		'root': {
			'nodeId': 1,
			'backendNodeId': 1,
			'nodeType': 9,
			'nodeName': '#document',
			'localName': '',
			'nodeValue': '',
			'children': [
				{
					'nodeId': 2,
					'backendNodeId': 2,
					'nodeType': 1,
					'nodeName': 'HTML',
					'localName': 'html',
					'nodeValue': '',
					'attributes': [],
					'frameId': 'FRAME-MAIN',
					'children': [
						{
							'nodeId': 3,
							'backendNodeId': 3,
							'nodeType': 1,
							'nodeName': 'BODY',
							'localName': 'body',
							'nodeValue': '',
							'attributes': [],
							'children': [
								{
									'nodeId': 4,
									'backendNodeId': 4,
									'nodeType': 1,
									'nodeName': 'BUTTON',
									'localName': 'button',
									'nodeValue': '',
									'attributes': ['type', 'submit', 'aria-label', 'Buy now'],
									'children': [
										{
											'nodeId': 5,
											'backendNodeId': 5,
											'nodeType': 3,
											'nodeName': '#text',
											'localName': '',
											'nodeValue': 'Buy',
										}
									],
								},
								{
									'nodeId': 6,
									'backendNodeId': 6,
									'nodeType': 1,
									'nodeName': 'DIV',
									'localName': 'div',
									'nodeValue': '',
									'attributes': ['onclick', 'open()'],
									'children': [],
								},
							],
						}
					],
				}
			],
		}
	}
	snapshot = {
		'documents': [
			{
				'nodes': {'backendNodeId': [1, 2, 3, 4, 5, 6], 'isClickable': {'index': [3]}},
				'layout': {
					'nodeIndex': [1, 2, 3, 4, 5],
					'bounds': [
						[0, 0, 1600, 1200],
						[0, 0, 1600, 1200],
						[20, 20, 200, 60],
						[40, 30, 60, 40],
						[0, 100, 200, 100],
					],
					'styles': [style_row(), style_row(), style_row(cursor=6), style_row(), style_row(display=7)],
					'paintOrders': [0, 1, 2, 3, 4],
					'clientRects': [[0, 0, 800, 600], [], [], [], []],
					'scrollRects': [[0, 0, 800, 600], [], [], [], []],
				},
			}
		],
		'strings': STRINGS,
	}
	ax_tree = {
		'nodes': [
			{
				'nodeId': 'ax-4',
				'ignored': False,
				'role': {'type': 'role', 'value': 'button'},
				'name': {'type': 'computedString', 'value': 'Buy now'},
				'properties': [{'name': 'focusable', 'value': {'type': 'booleanOrUndefined', 'value': True}}],
				'backendDOMNodeId': 4,
			},
			{'nodeId': 'ax-root', 'ignored': True, 'role': {'type': 'role', 'value': 'RootWebArea'}},
		]
	}
	return TargetAllTrees(
		snapshot=snapshot,
		dom_tree=dom_tree,
		ax_tree=ax_tree,
		device_pixel_ratio=2.0,
		cdp_timing={'capture_snapshot': 0.01},
	)


class TestSnapshotLookup:
	def test_bounds_are_scaled_to_css_pixels(self):
		lookup = build_snapshot_lookup(make_capture().snapshot, device_pixel_ratio=2.0)

		button = lookup[4]
		assert (button.bounds.x, button.bounds.y, button.bounds.width, button.bounds.height) == (10, 10, 100, 30)
		# client and scroll rects are reported in CSS pixels already
		assert lookup[2].clientRects.width == 800
		assert lookup[2].scrollRects.height == 600

	def test_styles_cursor_and_clickability(self):
		lookup = build_snapshot_lookup(make_capture().snapshot, device_pixel_ratio=2.0)

		assert lookup[4].cursor_style == 'pointer'
		assert lookup[4].computed_styles['display'] == 'block'
		assert lookup[4].is_clickable is True
		assert lookup[3].is_clickable is False
		assert lookup[6].computed_styles['display'] == 'none'
		assert lookup[4].paint_order == 2

	def test_nodes_without_layout(self):
		lookup = build_snapshot_lookup(make_capture().snapshot)

		assert lookup[1].bounds is None
		assert lookup[1].computed_styles is None

	def test_invalid_device_pixel_ratio_falls_back(self):
		lookup = build_snapshot_lookup(make_capture().snapshot, device_pixel_ratio=0)
		assert lookup[4].bounds.width == 200

	def test_short_arrays_do_not_raise(self):
		snapshot = make_capture().snapshot
		snapshot['documents'][0]['layout']['bounds'] = [[0, 0]]
		snapshot['documents'][0]['layout']['styles'] = []

		lookup = build_snapshot_lookup(snapshot)

		assert lookup[2].bounds is None
		assert lookup[2].computed_styles is None

	def test_empty_snapshot(self):
		assert build_snapshot_lookup({'documents': [], 'strings': []}) == {}


class TestBuildEnhancedTree:
	def test_nodes_are_linked_into_arena(self):
		tree = DomService().build_enhanced_tree(make_capture())

		assert len(tree) == 6
		assert tree.root.node_type == NodeType.DOCUMENT_NODE
		button = tree.get(4)
		assert button.parent_node.tag_name == 'body'
		assert [child.node_id for child in button.children] == [5]
		assert tree.get(5).parent_node is button

	def test_attributes_and_accessibility(self):
		button = DomService().build_enhanced_tree(make_capture()).get(4)

		assert button.attributes == {'type': 'submit', 'aria-label': 'Buy now'}
		assert button.ax_node.role == 'button'
		assert button.ax_node.name == 'Buy now'
		assert button.ax_node.properties[0].name == 'focusable'
		assert button.ax_node.properties[0].value is True

	def test_positions_and_visibility(self):
		tree = DomService().build_enhanced_tree(make_capture())

		button = tree.get(4)
		assert button.is_visible is True
		assert button.absolute_position.to_dict() == {'x': 10, 'y': 10, 'width': 100, 'height': 30}
		assert tree.get(6).is_visible is False
		assert tree.get(1).is_visible is False

	def test_null_capture_raises(self):
		with pytest.raises(MalformedDOMTreeError):
			DomService().build_enhanced_tree(None)

	def test_missing_root_raises(self):
		capture = make_capture()
		capture.dom_tree = {}
		with pytest.raises(PageTreeError):
			DomService().build_enhanced_tree(capture)

	def test_missing_identity_fields_raise(self):
		capture = make_capture()
		del capture.dom_tree['root']['children'][0]['children'][0]['children'][0]['backendNodeId']

		with pytest.raises(MalformedDOMTreeError) as exc_info:
			DomService().build_enhanced_tree(capture)

		assert 'backendNodeId' in str(exc_info.value)
		assert exc_info.value.node['nodeId'] == 4

	def test_repeated_node_id_raises(self):
		capture = make_capture()
		capture.dom_tree['root']['children'][0]['children'][0]['nodeId'] = 2

		with pytest.raises(MalformedDOMTreeError, match='Duplicate nodeId 2'):
			DomService().build_enhanced_tree(capture)

	def test_meaningful_text(self):
		button = DomService().build_enhanced_tree(make_capture()).get(4)
		assert button.get_meaningful_text_for_llm() == 'Buy now'

		del button.attributes['aria-label']
		assert button.get_meaningful_text_for_llm() == 'Buy'

	def test_unknown_node_type_raises(self):
		capture = make_capture()
		capture.dom_tree['root']['children'][0]['nodeType'] = 99

		with pytest.raises(MalformedDOMTreeError):
			DomService().build_enhanced_tree(capture)


class TestVisibility:
	def test_outside_frame_viewport_is_hidden(self):
		capture = make_capture()
		layout = capture.snapshot['documents'][0]['layout']
		layout['bounds'][2] = [40, 1400, 60, 40]

		tree = DomService().build_enhanced_tree(capture)

		assert tree.get(4).is_visible is False

	def test_scrolled_frame_shifts_viewport(self):
		capture = make_capture()
		layout = capture.snapshot['documents'][0]['layout']
		layout['bounds'][2] = [40, 1400, 60, 40]
		layout['scrollRects'][0] = [0, 500, 800, 2000]

		tree = DomService().build_enhanced_tree(capture)

		assert tree.get(4).is_visible is True
		assert tree.get(4).absolute_position.y == 700 - 500

	def test_zero_opacity_is_hidden(self):
		capture = make_capture()
		capture.snapshot['strings'] = copy.copy(STRINGS)
		capture.snapshot['strings'][2] = '0'

		tree = DomService().build_enhanced_tree(capture)

		assert tree.get(4).is_visible is False


class TestGetSerializedDomTree:
	def test_capture_to_text(self):
		state, tree, timing_info = DomService().get_serialized_dom_tree(make_capture())

		assert list(state.selector_map) == [1]
		assert state.selector_map[1] is tree.get(4)
		assert state.llm_representation() == '[1]<button type=submit aria-label=Buy now />\n\tBuy'

		assert timing_info['capture_snapshot'] == 0.01
		for key in ('build_enhanced_tree', 'serialize_accessible_elements_total', 'get_serialized_dom_tree_total'):
			assert key in timing_info

	def test_previous_state_marks_new_elements(self):
		service = DomService()
		previous_state, _, _ = service.get_serialized_dom_tree(make_capture())

		capture = make_capture()
		capture.dom_tree['root']['children'][0]['children'][0]['children'][0]['backendNodeId'] = 40
		capture.snapshot['documents'][0]['nodes']['backendNodeId'][3] = 40
		capture.ax_tree['nodes'][0]['backendDOMNodeId'] = 40

		state, _, _ = service.get_serialized_dom_tree(capture, previous_cached_state=previous_state)

		assert state.llm_representation().startswith('*[1]<button')
