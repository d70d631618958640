class DocumentStoreError(Exception):
	"""Base class for operations the store refuses to apply."""


class DuplicateDatasetNameError(DocumentStoreError):
	def __init__(self, name: str, existing_id: str):
		self.name = name
		self.existing_id = existing_id
		super().__init__(f'A dataset named "{name}" already exists')
