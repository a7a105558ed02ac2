from pagetree.dom.serializer.context import SerializationContext
from pagetree.dom.views import SimplifiedNode


class InteractiveIndexAssigner:
	"""Step 4: number visible interactive nodes in pre-order and fill the selector map."""

	def __init__(self, context: SerializationContext):
		self.context = context

	def assign(self, node: SimplifiedNode | None) -> None:
		if not node:
			return

		original = node.original_node
		if not node.excluded_by_parent and self.context.is_interactive_and_visible(original):
			index = self.context.next_index(original)
			node.interactive_index = index
			original.element_index = index
			node.is_new = self.context.is_new(original)

		for child in node.children:
			self.assign(child)
