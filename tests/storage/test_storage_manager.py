import os
import pytest
from pagestore.storage import PAGE_SIZE, NO_POSITION, ReturnCode, StorageManager


@pytest.fixture
def sm():
    manager = StorageManager(sync_writes=False)
    manager.init_storage_manager()
    return manager


@pytest.fixture
def page_file(tmp_path, sm):
    path = str(tmp_path / "test.bin")
    assert sm.create_page_file(path) == ReturnCode.OK
    return path


def test_create_page_file_writes_one_zero_page(sm, page_file):
    assert os.path.getsize(page_file) == PAGE_SIZE
    rc, handle = sm.open_page_file(page_file)
    assert rc == ReturnCode.OK
    assert handle.total_num_pages == 1
    assert handle.cur_page_pos == 0
    assert handle.file_name == page_file
    buf = bytearray(b'\xff' * PAGE_SIZE)
    assert sm.read_first_block(handle, buf) == ReturnCode.OK
    assert buf == bytearray(PAGE_SIZE)
    assert sm.close_page_file(handle) == ReturnCode.OK


def test_create_truncates_existing_file(sm, tmp_path):
    path = str(tmp_path / "old.bin")
    with open(path, 'wb') as f:
        f.write(b'x' * (PAGE_SIZE * 3))
    assert sm.create_page_file(path) == ReturnCode.OK
    assert os.path.getsize(path) == PAGE_SIZE


def test_create_in_missing_directory_fails(sm, tmp_path):
    path = str(tmp_path / "no_such_dir" / "f.bin")
    assert sm.create_page_file(path) == ReturnCode.FILE_NOT_FOUND


def test_open_missing_file(sm, tmp_path):
    rc, handle = sm.open_page_file(str(tmp_path / "missing.bin"))
    assert rc == ReturnCode.FILE_NOT_FOUND
    assert handle is None


def test_open_truncated_tail_drops_partial_page(sm, tmp_path):
    path = str(tmp_path / "odd.bin")
    with open(path, 'wb') as f:
        f.write(bytes(PAGE_SIZE * 2 + 100))
    rc, handle = sm.open_page_file(path)
    assert rc == ReturnCode.OK
    assert handle.total_num_pages == 2
    assert handle.trailing_bytes == 100
    sm.close_page_file(handle)


def test_close_twice_fails(sm, page_file):
    rc, handle = sm.open_page_file(page_file)
    assert sm.close_page_file(handle) == ReturnCode.OK
    assert not handle.is_open
    assert sm.close_page_file(handle) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.close_page_file(None) == ReturnCode.FILE_HANDLE_NOT_INIT


def test_destroy_page_file(sm, page_file):
    assert sm.destroy_page_file(page_file) == ReturnCode.OK
    assert not os.path.exists(page_file)
    # 再次删除应失败
    assert sm.destroy_page_file(page_file) == ReturnCode.FILE_NOT_FOUND


def test_write_then_read_round_trip(sm, page_file):
    rc, handle = sm.open_page_file(page_file)
    assert sm.ensure_capacity(3, handle) == ReturnCode.OK
    data = bytes(range(256)) * (PAGE_SIZE // 256)
    assert sm.write_block(2, handle, data) == ReturnCode.OK
    assert sm.get_block_pos(handle) == 2
    buf = bytearray(PAGE_SIZE)
    assert sm.read_block(0, handle, buf) == ReturnCode.OK
    assert sm.read_block(2, handle, buf) == ReturnCode.OK
    assert bytes(buf) == data
    sm.close_page_file(handle)
    # 重新打开后数据仍然存在
    rc, handle = sm.open_page_file(page_file)
    assert handle.total_num_pages == 3
    assert sm.read_last_block(handle, buf) == ReturnCode.OK
    assert bytes(buf) == data
    sm.close_page_file(handle)


def test_read_block_sets_position_for_every_page(sm, page_file):
    rc, handle = sm.open_page_file(page_file)
    sm.ensure_capacity(4, handle)
    buf = bytearray(PAGE_SIZE)
    for i in range(handle.total_num_pages):
        assert sm.read_block(i, handle, buf) == ReturnCode.OK
        assert sm.get_block_pos(handle) == i
    assert sm.read_block(4, handle, buf) == ReturnCode.READ_NON_EXISTING_PAGE
    assert sm.read_block(-1, handle, buf) == ReturnCode.READ_NON_EXISTING_PAGE
    # 失败的读取不改变当前位置
    assert sm.get_block_pos(handle) == 3
    sm.close_page_file(handle)


def test_write_out_of_range_reports_write_failed(sm, page_file):
    rc, handle = sm.open_page_file(page_file)
    page = bytes(PAGE_SIZE)
    assert sm.write_block(1, handle, page) == ReturnCode.WRITE_FAILED
    assert sm.write_block(-1, handle, page) == ReturnCode.WRITE_FAILED
    assert handle.total_num_pages == 1
    assert os.path.getsize(page_file) == PAGE_SIZE
    sm.close_page_file(handle)


def test_relative_navigation(sm, page_file):
    rc, handle = sm.open_page_file(page_file)
    for _ in range(3):
        assert sm.append_empty_block(handle) == ReturnCode.OK
    assert handle.total_num_pages == 4
    buf = bytearray(PAGE_SIZE)
    for expected in range(1, 4):
        assert sm.read_next_block(handle, buf) == ReturnCode.OK
        assert sm.get_block_pos(handle) == expected
    assert sm.read_next_block(handle, buf) == ReturnCode.READ_NON_EXISTING_PAGE
    assert sm.get_block_pos(handle) == 3
    assert sm.read_current_block(handle, buf) == ReturnCode.OK
    assert sm.read_previous_block(handle, buf) == ReturnCode.OK
    assert sm.get_block_pos(handle) == 2
    assert sm.read_first_block(handle, buf) == ReturnCode.OK
    assert sm.read_previous_block(handle, buf) == ReturnCode.READ_NON_EXISTING_PAGE
    assert sm.get_block_pos(handle) == 0
    assert sm.read_last_block(handle, buf) == ReturnCode.OK
    assert sm.get_block_pos(handle) == 3
    sm.close_page_file(handle)


def test_write_current_block(sm, page_file):
    rc, handle = sm.open_page_file(page_file)
    sm.ensure_capacity(2, handle)
    buf = bytearray(PAGE_SIZE)
    sm.read_block(1, handle, buf)
    page = b'abc' + bytes(PAGE_SIZE - 3)
    assert sm.write_current_block(handle, page) == ReturnCode.OK
    assert sm.read_block(1, handle, buf) == ReturnCode.OK
    assert buf[:3] == b'abc'
    sm.close_page_file(handle)


def test_read_last_block_on_empty_file(sm, tmp_path):
    path = str(tmp_path / "empty.bin")
    open(path, 'wb').close()
    rc, handle = sm.open_page_file(path)
    assert handle.total_num_pages == 0
    buf = bytearray(PAGE_SIZE)
    assert sm.read_last_block(handle, buf) == ReturnCode.READ_NON_EXISTING_PAGE
    assert sm.read_first_block(handle, buf) == ReturnCode.READ_NON_EXISTING_PAGE
    sm.close_page_file(handle)


def test_operations_on_closed_handle(sm, page_file):
    rc, handle = sm.open_page_file(page_file)
    sm.close_page_file(handle)
    buf = bytearray(PAGE_SIZE)
    assert sm.read_block(0, handle, buf) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.write_block(0, handle, buf) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.read_first_block(handle, buf) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.read_next_block(handle, buf) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.read_previous_block(handle, buf) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.read_current_block(handle, buf) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.read_last_block(handle, buf) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.write_current_block(handle, buf) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.append_empty_block(handle) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.ensure_capacity(3, handle) == ReturnCode.FILE_HANDLE_NOT_INIT


def test_none_handle(sm):
    buf = bytearray(PAGE_SIZE)
    assert sm.get_block_pos(None) == NO_POSITION
    assert sm.read_block(0, None, buf) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.read_next_block(None, buf) == ReturnCode.FILE_HANDLE_NOT_INIT
    assert sm.write_block(0, None, buf) == ReturnCode.FILE_HANDLE_NOT_INIT


def test_buffer_contract_violations(sm, page_file):
    rc, handle = sm.open_page_file(page_file)
    with pytest.raises(ValueError):
        sm.read_block(0, handle, bytearray(PAGE_SIZE - 1))
    with pytest.raises(ValueError):
        sm.write_block(0, handle, b'short')
    with pytest.raises(TypeError):
        sm.read_block(0, handle, bytes(PAGE_SIZE))
    assert sm.get_block_pos(handle) == 0
    sm.close_page_file(handle)


def test_small_page_size(tmp_path):
    sm = StorageManager(page_size=64, sync_writes=False)
    path = str(tmp_path / "small.bin")
    assert sm.create_page_file(path) == ReturnCode.OK
    assert os.path.getsize(path) == 64
    rc, handle = sm.open_page_file(path)
    assert sm.ensure_capacity(2, handle) == ReturnCode.OK
    assert sm.write_block(1, handle, b'z' * 64) == ReturnCode.OK
    sm.close_page_file(handle)
    with open(path, 'rb') as f:
        assert f.read() == bytes(64) + b'z' * 64


def test_invalid_page_size():
    with pytest.raises(ValueError):
        StorageManager(page_size=0)
