from pagetree.dom.serializer.context import SerializationContext
from pagetree.dom.views import NodeType, SimplifiedNode


class TreeOptimizer:
	"""Step 2: drop containers whose subtrees turned out empty after simplification."""

	def __init__(self, context: SerializationContext):
		self.context = context

	def optimize(self, node: SimplifiedNode | None) -> SimplifiedNode | None:
		if not node:
			return None

		optimized_children = []
		for child in node.children:
			optimized_child = self.optimize(child)
			if optimized_child:
				optimized_children.append(optimized_child)

		node.children = optimized_children

		original = node.original_node
		if (
			self.context.is_interactive_and_visible(original)
			or original.is_actually_scrollable
			or original.node_type == NodeType.TEXT_NODE
			or node.children
		):
			return node

		return None
