"""SnapConnect media services.

Upload local captures to the object store, resolve persisted media
references into displayable URLs, and repair records left behind by broken
uploads.
"""
