from pagetree.dom.serializer.context import SerializationContext
from pagetree.dom.views import EnhancedDOMTreeNode, NodeType, SimplifiedNode

DISABLED_ELEMENTS = {'style', 'script', 'head', 'meta', 'link', 'title'}


class TreeSimplifier:
	"""Step 1: build a simplified tree keeping only visible interactive, scrollable or text-bearing branches."""

	def __init__(self, context: SerializationContext):
		self.context = context

	def simplify(self, node: EnhancedDOMTreeNode | None) -> SimplifiedNode | None:
		if node is None:
			return None
		return self._create_simplified_tree(node)

	def _create_simplified_tree(self, node: EnhancedDOMTreeNode) -> SimplifiedNode | None:
		if node.node_type == NodeType.DOCUMENT_NODE:
			# One meaningful root per document
			for child in node.children_and_shadow_roots:
				simplified_child = self._create_simplified_tree(child)
				if simplified_child:
					return simplified_child
			return None

		if node.node_type == NodeType.TEXT_NODE:
			if self.context.is_visible(node) and len(node.node_value.strip()) > 1:
				return SimplifiedNode(original_node=node)
			return None

		if node.node_type == NodeType.ELEMENT_NODE:
			if node.tag_name in DISABLED_ELEMENTS:
				return None
			if node.tag_name == 'iframe' and node.content_document:
				# Flatten the content document into the iframe
				children = node.content_document.children
			else:
				children = node.children_and_shadow_roots
		elif node.node_type == NodeType.DOCUMENT_FRAGMENT_NODE:
			# Shadow roots are a plain pass-through
			children = node.children_and_shadow_roots
		else:
			return None

		simplified = SimplifiedNode(original_node=node)
		for child in children:
			simplified_child = self._create_simplified_tree(child)
			if simplified_child:
				simplified.children.append(simplified_child)

		if node.node_type == NodeType.DOCUMENT_FRAGMENT_NODE or (node.tag_name == 'iframe' and node.content_document):
			return simplified

		if self.context.is_interactive_and_visible(node) or node.is_actually_scrollable or simplified.children:
			return simplified
		return None
