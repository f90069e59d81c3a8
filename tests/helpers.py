"""Builders for store inputs."""

import base64

from models.schemas import NodeCreate


def file_input(name, data=b'', parent_id=None, mime_type='text/plain', **extra):
    """Build a NodeCreate for a file holding ``data``."""
    return NodeCreate(
        name=name,
        path=f'/{name}',
        mime_type=mime_type,
        content=base64.b64encode(data).decode(),
        parent_id=parent_id,
        **extra,
    )


def folder_input(name, parent_id=None):
    return NodeCreate(name=name, path=f'/{name}', is_folder=True, parent_id=parent_id)


def b64(data):
    return base64.b64encode(data).decode()
