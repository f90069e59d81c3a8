"""Tests for node input normalization and search filter parsing."""

from datetime import datetime, timezone

import pydantic
import pytest

from helpers import b64
from models.schemas import Node, NodeCreate, NodeUpdate, SearchFilter

MB = 1024 * 1024


def make_node(node_id, size, is_folder=False, mime_type='application/octet-stream', name='file'):
    return Node(
        id=node_id,
        name=name,
        size=size,
        mime_type='folder' if is_folder else mime_type,
        is_folder=is_folder,
        created_at=datetime(2024, 5, 17, 12, 0, tzinfo=timezone.utc),
    )


def test_file_size_derived_from_content():
    """Test size is computed from the decoded payload."""
    data = NodeCreate(name='a.txt', content=b64(b'12345'), mime_type='text/plain')

    assert data.size == 5


def test_mismatched_size_rejected():
    """Test a declared size that disagrees with the content fails validation."""
    with pytest.raises(pydantic.ValidationError):
        NodeCreate(name='a.txt', content=b64(b'12345'), size=99)


def test_invalid_base64_rejected():
    """Test content must be base64."""
    with pytest.raises(pydantic.ValidationError):
        NodeCreate(name='a.txt', content='not base64!!')


def test_data_url_prefix_stripped():
    """Test a browser data URL supplies payload and mime type."""
    data = NodeCreate(name='pic.png', content='data:image/png;base64,' + b64(b'\x89PNG'))

    assert data.content == b64(b'\x89PNG')
    assert data.mime_type == 'image/png'
    assert data.size == 4


def test_missing_mime_type_defaults():
    """Test files without a mime type fall back to octet-stream."""
    data = NodeCreate(name='blob', content=b64(b'x'))

    assert data.mime_type == 'application/octet-stream'


def test_folder_normalized():
    """Test folder inputs drop content and size."""
    data = NodeCreate(name='Docs', is_folder=True, content=b64(b'ignored'), size=10, mime_type='text/plain')

    assert data.size == 0
    assert data.content == ''
    assert data.mime_type == 'folder'


def test_camel_case_aliases_accepted():
    """Test JSON-style field names populate the model."""
    data = NodeCreate.model_validate(
        {'name': 'a', 'mimeType': 'text/plain', 'parentId': 3, 'isFolder': False, 'content': b64(b'a')}
    )

    assert data.parent_id == 3
    assert data.mime_type == 'text/plain'


def test_empty_name_rejected():
    """Test a node needs a name."""
    with pytest.raises(pydantic.ValidationError):
        NodeCreate(name='', is_folder=True)


def test_update_changes_only_set_fields():
    """Test a rename touches nothing else."""
    assert NodeUpdate(name='renamed').changes() == {'name': 'renamed'}


def test_update_null_parent_means_root():
    """Test an explicit null parent is kept as a move to root."""
    update = NodeUpdate.model_validate({'parentId': None})

    assert update.changes() == {'parent_id': None}


def test_update_content_sets_size():
    """Test replacing content carries the new size."""
    changes = NodeUpdate(content=b64(b'abc')).changes()

    assert changes['size'] == 3
    assert changes['content'] == b64(b'abc')


def test_update_null_name_rejected():
    """Test fields other than parentId cannot be nulled."""
    with pytest.raises(pydantic.ValidationError):
        NodeUpdate.model_validate({'name': None})


def test_update_size_without_content_rejected():
    """Test size cannot be changed on its own."""
    with pytest.raises(pydantic.ValidationError):
        NodeUpdate(size=10)


def test_update_ignores_immutable_fields():
    """Test id, createdAt and isFolder in a patch body are dropped."""
    update = NodeUpdate.model_validate({'id': 5, 'isFolder': True, 'createdAt': '2020-01-01', 'name': 'x'})

    assert update.changes() == {'name': 'x'}


def test_search_size_range_in_megabytes():
    """Test 1MB..10MB bounds select exactly the files inside the range."""
    nodes = [
        make_node(1, MB - 1),
        make_node(2, MB),
        make_node(3, 5 * MB),
        make_node(4, 10 * MB),
        make_node(5, 10 * MB + 1),
        make_node(6, 0, is_folder=True),
    ]
    query = SearchFilter(min_size=1048576, max_size=10485760)

    assert [n.id for n in nodes if query.matches(n)] == [2, 3, 4]


def test_search_empty_filter_matches_files_only():
    """Test an empty filter matches every file and no folder."""
    query = SearchFilter()

    assert query.matches(make_node(1, 10))
    assert not query.matches(make_node(2, 0, is_folder=True))


def test_search_blank_strings_are_absent():
    """Test blank name and type impose no constraint."""
    query = SearchFilter(name='  ', type='')

    assert query.name is None
    assert query.type is None


def test_search_date_only_end_covers_day():
    """Test a date-only end bound extends to the end of that day."""
    query = SearchFilter(start_date='2024-05-17', end_date='2024-05-17')

    assert query.start_date == datetime(2024, 5, 17, tzinfo=timezone.utc)
    assert query.end_date.hour == 23
    assert query.matches(make_node(1, 1))


def test_search_naive_datetime_taken_as_utc():
    """Test datetimes without an offset are read as UTC."""
    query = SearchFilter(start_date='2024-05-17T12:00:00')

    assert query.start_date.tzinfo is not None
    assert query.matches(make_node(1, 1))


def test_search_inverted_range_rejected():
    """Test minSize above maxSize is a validation error."""
    with pytest.raises(pydantic.ValidationError):
        SearchFilter(min_size=10, max_size=5)


def test_search_invalid_date_rejected():
    """Test garbage dates fail validation."""
    with pytest.raises(pydantic.ValidationError):
        SearchFilter(start_date='yesterday')


def test_search_type_prefix():
    """Test type is a prefix, not a substring."""
    query = SearchFilter(type='image/')

    assert query.matches(make_node(1, 1, mime_type='image/png'))
    assert not query.matches(make_node(2, 1, mime_type='application/image/x'))
