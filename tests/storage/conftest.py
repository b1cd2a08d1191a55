import pytest
from pagestore.storage import ReturnCode, StorageManager


class FaultyFile:
    """
    包装真实文件对象，模拟底层 I/O 故障：
    - 从第 fail_after 次写入开始短写 (mode='short') 或抛出 OSError (mode='raise')
    - short_read=True 时 readinto 只读半页
    - 前 fail_flush 次 flush 抛出 OSError
    - fail_close=True 时关闭真实文件后再抛出 OSError
    """
    def __init__(self, file, fail_after=0, mode='short', short_read=False, fail_flush=0, fail_close=False):
        self._file = file
        self.fail_after = fail_after
        self.mode = mode
        self.short_read = short_read
        self.fail_flush = fail_flush
        self.fail_close = fail_close
        self.writes = 0

    def write(self, data):
        if self.fail_after is not None and self.writes >= self.fail_after:
            if self.mode == 'raise':
                raise OSError(28, "No space left on device")
            # 模拟短写：只写入一半
            return self._file.write(bytes(memoryview(data)[:len(data) // 2]))
        self.writes += 1
        return self._file.write(data)

    def readinto(self, buffer):
        view = memoryview(buffer)
        if self.short_read:
            return self._file.readinto(view[:len(view) // 2])
        return self._file.readinto(view)

    def flush(self):
        if self.fail_flush > 0:
            self.fail_flush -= 1
            raise OSError(5, "Input/output error")
        return self._file.flush()

    def close(self):
        self._file.close()
        if self.fail_close:
            raise OSError(5, "Input/output error")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __getattr__(self, name):
        return getattr(self._file, name)


@pytest.fixture
def faulty_file():
    return FaultyFile


@pytest.fixture
def sm():
    return StorageManager(sync_writes=False)


@pytest.fixture
def handle(tmp_path, sm):
    path = str(tmp_path / "cap.bin")
    sm.create_page_file(path)
    rc, h = sm.open_page_file(path)
    assert rc == ReturnCode.OK
    yield h
    if h.is_open:
        sm.close_page_file(h)
