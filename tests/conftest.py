"""Shared fixtures: a small builder for arena-backed DOM trees."""

import pytest

from pagetree.dom.views import (
	DOMRect,
	EnhancedAXNode,
	EnhancedAXProperty,
	EnhancedDOMTree,
	EnhancedDOMTreeNode,
	EnhancedSnapshotNode,
	NodeType,
)

Rect = tuple[float, float, float, float]


def rect(values: Rect | None) -> DOMRect | None:
	if values is None:
		return None
	x, y, width, height = values
	return DOMRect(x=x, y=y, width=width, height=height)


class TreeBuilder:
	"""
	Creates nodes bottom-up and links them into one `EnhancedDOMTree` on `build`.

	Node and backend ids are assigned sequentially; pass `backend_node_id` to override.
	"""

	def __init__(self, backend_id_offset: int = 0):
		self.backend_id_offset = backend_id_offset
		self._next_id = 1
		self._children: dict[int, list[EnhancedDOMTreeNode]] = {}
		self._shadow_roots: dict[int, list[EnhancedDOMTreeNode]] = {}
		self._content_documents: dict[int, EnhancedDOMTreeNode] = {}

	def _new_id(self) -> int:
		node_id = self._next_id
		self._next_id += 1
		return node_id

	def element(
		self,
		tag: str,
		*children: EnhancedDOMTreeNode,
		attributes: dict[str, str] | None = None,
		bounds: Rect | None = (0, 0, 100, 30),
		is_visible: bool = True,
		cursor_style: str | None = None,
		computed_styles: dict[str, str] | None = None,
		is_scrollable: bool | None = None,
		scroll_rects: Rect | None = None,
		client_rects: Rect | None = None,
		ax_role: str | None = None,
		ax_name: str | None = None,
		ax_properties: dict | None = None,
		shadow_roots: list[EnhancedDOMTreeNode] | None = None,
		content_document: EnhancedDOMTreeNode | None = None,
		backend_node_id: int | None = None,
		has_snapshot: bool = True,
	) -> EnhancedDOMTreeNode:
		node_id = self._new_id()
		ax_node = None
		if ax_role or ax_name or ax_properties:
			ax_node = EnhancedAXNode(
				ax_node_id=f'ax-{node_id}',
				ignored=False,
				role=ax_role,
				name=ax_name,
				description=None,
				properties=[EnhancedAXProperty(name=k, value=v) for k, v in (ax_properties or {}).items()] or None,
			)

		snapshot_node = None
		if has_snapshot:
			snapshot_node = EnhancedSnapshotNode(
				cursor_style=cursor_style,
				bounds=rect(bounds),
				clientRects=rect(client_rects),
				scrollRects=rect(scroll_rects),
				computed_styles=computed_styles,
			)

		node = EnhancedDOMTreeNode(
			node_id=node_id,
			backend_node_id=backend_node_id if backend_node_id is not None else node_id + self.backend_id_offset,
			node_type=NodeType.ELEMENT_NODE,
			node_name=tag.upper(),
			attributes=attributes or {},
			is_scrollable=is_scrollable,
			is_visible=is_visible,
			ax_node=ax_node,
			snapshot_node=snapshot_node,
		)
		self._children[node_id] = list(children)
		if shadow_roots:
			self._shadow_roots[node_id] = shadow_roots
		if content_document is not None:
			self._content_documents[node_id] = content_document
		return node

	def text(self, value: str, is_visible: bool = True, bounds: Rect | None = (0, 0, 50, 20)) -> EnhancedDOMTreeNode:
		node_id = self._new_id()
		return EnhancedDOMTreeNode(
			node_id=node_id,
			backend_node_id=node_id + self.backend_id_offset,
			node_type=NodeType.TEXT_NODE,
			node_name='#text',
			node_value=value,
			is_visible=is_visible,
			snapshot_node=EnhancedSnapshotNode(bounds=rect(bounds)),
		)

	def _container(self, node_type: NodeType, node_name: str, children: tuple) -> EnhancedDOMTreeNode:
		node_id = self._new_id()
		node = EnhancedDOMTreeNode(
			node_id=node_id,
			backend_node_id=node_id + self.backend_id_offset,
			node_type=node_type,
			node_name=node_name,
		)
		self._children[node_id] = list(children)
		return node

	def document(self, *children: EnhancedDOMTreeNode) -> EnhancedDOMTreeNode:
		return self._container(NodeType.DOCUMENT_NODE, '#document', children)

	def shadow_root(self, *children: EnhancedDOMTreeNode) -> EnhancedDOMTreeNode:
		return self._container(NodeType.DOCUMENT_FRAGMENT_NODE, '#document-fragment', children)

	def page(self, *body_children: EnhancedDOMTreeNode, viewport: Rect = (0, 0, 1280, 720)) -> EnhancedDOMTreeNode:
		"""document > html > body > children, with a viewport-sized html element."""
		body = self.element('body', *body_children, bounds=viewport)
		html = self.element('html', body, bounds=viewport, client_rects=viewport, scroll_rects=viewport)
		return self.document(html)

	def build(self, root: EnhancedDOMTreeNode) -> EnhancedDOMTree:
		tree = EnhancedDOMTree()
		self._add(tree, root)
		return tree

	def _add(self, tree: EnhancedDOMTree, node: EnhancedDOMTreeNode) -> None:
		tree.add_node(node)
		if node.node_id in self._content_documents:
			document = self._content_documents[node.node_id]
			self._add(tree, document)
			tree.set_content_document(node, document)
		for shadow_root in self._shadow_roots.get(node.node_id, []):
			self._add(tree, shadow_root)
			tree.link_shadow_root(node, shadow_root)
		children = self._children.get(node.node_id)
		if children is not None:
			node.children_ids = []
			for child in children:
				self._add(tree, child)
				tree.link_child(node, child)


@pytest.fixture
def builder() -> TreeBuilder:
	return TreeBuilder()


@pytest.fixture
def button_page(builder: TreeBuilder) -> EnhancedDOMTree:
	"""<button><span>Buy</span></button> and nothing else."""
	span = builder.element('span', builder.text('Buy', bounds=(15, 10, 30, 15)), bounds=(10, 5, 40, 20))
	button = builder.element('button', span, bounds=(0, 0, 100, 30))
	return builder.build(builder.page(button))


@pytest.fixture
def builder_factory() -> type[TreeBuilder]:
	return TreeBuilder
