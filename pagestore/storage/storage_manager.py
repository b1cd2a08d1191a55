# storage_manager.py

"""
存储管理器：把单个磁盘文件抽象为定长页数组。

- 文件生命周期：create / open / close / destroy
- 绝对与相对寻址：read_block / write_block 以及 first/previous/current/next/last
- 容量管理：append_empty_block / ensure_capacity

所有操作都返回 ReturnCode，OSError 在操作边界被捕获并映射为对应的返回码。
"""

import os
from typing import Optional, Tuple, Union

from loguru import logger

from .constants import PAGE_SIZE, NO_POSITION
from .page_file_handle import PageFileHandle
from .return_codes import ReturnCode

ReadBuffer = Union[bytearray, memoryview]
WriteBuffer = Union[bytes, bytearray, memoryview]


class StorageManager:
    """
    页文件的存储管理器。
    本身不保存任何文件状态，所有状态都记录在 PageFileHandle 中。
    """
    def __init__(self, page_size: int = PAGE_SIZE, sync_writes: bool = True):
        """
        :param page_size: 页大小，磁盘格式固定为 4096，仅测试时使用更小的页。
        :param sync_writes: 写页后是否 fsync 到磁盘。
        """
        if page_size <= 0:
            raise ValueError("Page size must be positive.")
        self.page_size = page_size
        self.sync_writes = sync_writes

    def init_storage_manager(self) -> None:
        logger.info(f"存储管理器已初始化 (page_size={self.page_size}, sync_writes={self.sync_writes})")

    # ------------------------------------------------------------------
    # 文件生命周期
    # ------------------------------------------------------------------

    def create_page_file(self, file_name: str) -> ReturnCode:
        """创建新页文件（已存在则截断），写入一个全零页"""
        try:
            file = open(file_name, 'wb')
        except OSError as e:
            logger.error(f"无法创建页文件 {file_name}: {e}")
            return ReturnCode.FILE_NOT_FOUND
        written = 0
        try:
            with file:
                try:
                    written = file.write(bytes(self.page_size))
                    file.flush()
                finally:
                    # 初始页未完整写入时清空文件，不留下半页
                    if written != self.page_size:
                        self._truncate(file, 0, file_name)
        except OSError as e:
            logger.error(f"写入初始页失败 {file_name}: {e}")
            return ReturnCode.WRITE_FAILED
        if written != self.page_size:
            return ReturnCode.WRITE_FAILED
        logger.info(f"页文件已创建: {file_name}")
        return ReturnCode.OK

    def open_page_file(self, file_name: str) -> Tuple[ReturnCode, Optional[PageFileHandle]]:
        """以读写方式打开已存在的页文件，返回 (返回码, 句柄)"""
        try:
            file = open(file_name, 'r+b')
        except OSError as e:
            logger.error(f"无法打开页文件 {file_name}: {e}")
            return ReturnCode.FILE_NOT_FOUND, None
        try:
            handle = PageFileHandle(file_name, file, self.page_size)
        except OSError as e:
            file.close()
            logger.error(f"无法读取页文件大小 {file_name}: {e}")
            return ReturnCode.FILE_NOT_FOUND, None
        if handle.trailing_bytes:
            logger.warning(f"页文件 {file_name} 末尾有 {handle.trailing_bytes} 字节不足一页，未计入页数")
        logger.info(f"页文件已打开: {file_name} (共 {handle.total_num_pages} 页)")
        return ReturnCode.OK, handle

    def close_page_file(self, handle: Optional[PageFileHandle]) -> ReturnCode:
        if handle is None or not handle.is_open:
            return ReturnCode.FILE_HANDLE_NOT_INIT
        try:
            handle.release()
        except OSError as e:
            logger.error(f"关闭页文件失败 {handle.file_name}: {e}")
            return ReturnCode.FILE_NOT_FOUND
        logger.info(f"页文件已关闭: {handle.file_name}")
        return ReturnCode.OK

    def destroy_page_file(self, file_name: str) -> ReturnCode:
        try:
            os.remove(file_name)
        except OSError as e:
            logger.error(f"无法删除页文件 {file_name}: {e}")
            return ReturnCode.FILE_NOT_FOUND
        logger.info(f"页文件已删除: {file_name}")
        return ReturnCode.OK

    # ------------------------------------------------------------------
    # 块寻址
    # ------------------------------------------------------------------

    def _check_buffer(self, mem_page, writable: bool) -> memoryview:
        view = memoryview(mem_page)
        if writable and view.readonly:
            raise TypeError("Read buffer must be writable (bytearray or writable memoryview).")
        if view.nbytes != self.page_size:
            raise ValueError(f"Buffer size {view.nbytes} does not match page size {self.page_size}")
        return view.cast('B') if view.format != 'B' or view.ndim != 1 else view

    def read_block(self, page_num: int, handle: Optional[PageFileHandle], mem_page: ReadBuffer) -> ReturnCode:
        """读取第 page_num 页到调用方提供的缓冲区"""
        if handle is None or not handle.is_open:
            return ReturnCode.FILE_HANDLE_NOT_INIT
        view = self._check_buffer(mem_page, writable=True)
        if not handle.contains(page_num):
            return ReturnCode.READ_NON_EXISTING_PAGE
        file = handle.file
        try:
            file.seek(handle.page_offset(page_num))
            bytes_read = file.readinto(view)
        except OSError as e:
            logger.error(f"读取页 {page_num} 失败 {handle.file_name}: {e}")
            return ReturnCode.READ_NON_EXISTING_PAGE
        if bytes_read != self.page_size:
            return ReturnCode.READ_NON_EXISTING_PAGE
        handle._set_position(page_num)
        logger.debug(f"已读取页 {page_num}: {handle.file_name}")
        return ReturnCode.OK

    def get_block_pos(self, handle: Optional[PageFileHandle]) -> int:
        if handle is None:
            return NO_POSITION
        return handle.cur_page_pos

    def read_first_block(self, handle: Optional[PageFileHandle], mem_page: ReadBuffer) -> ReturnCode:
        return self.read_block(0, handle, mem_page)

    def read_previous_block(self, handle: Optional[PageFileHandle], mem_page: ReadBuffer) -> ReturnCode:
        if handle is None or not handle.is_open:
            return ReturnCode.FILE_HANDLE_NOT_INIT
        return self.read_block(handle.cur_page_pos - 1, handle, mem_page)

    def read_current_block(self, handle: Optional[PageFileHandle], mem_page: ReadBuffer) -> ReturnCode:
        if handle is None or not handle.is_open:
            return ReturnCode.FILE_HANDLE_NOT_INIT
        return self.read_block(handle.cur_page_pos, handle, mem_page)

    def read_next_block(self, handle: Optional[PageFileHandle], mem_page: ReadBuffer) -> ReturnCode:
        if handle is None or not handle.is_open:
            return ReturnCode.FILE_HANDLE_NOT_INIT
        return self.read_block(handle.cur_page_pos + 1, handle, mem_page)

    def read_last_block(self, handle: Optional[PageFileHandle], mem_page: ReadBuffer) -> ReturnCode:
        if handle is None or not handle.is_open:
            return ReturnCode.FILE_HANDLE_NOT_INIT
        return self.read_block(handle.total_num_pages - 1, handle, mem_page)

    def write_block(self, page_num: int, handle: Optional[PageFileHandle], mem_page: WriteBuffer) -> ReturnCode:
        """
        把缓冲区写入第 page_num 页，并在返回前刷盘。
        写路径上越界与 I/O 失败统一报告为 WRITE_FAILED。
        """
        if handle is None or not handle.is_open:
            return ReturnCode.FILE_HANDLE_NOT_INIT
        view = self._check_buffer(mem_page, writable=False)
        if not handle.contains(page_num):
            return ReturnCode.WRITE_FAILED
        file = handle.file
        try:
            file.seek(handle.page_offset(page_num))
            bytes_written = file.write(view)
            self._flush(file)
        except OSError as e:
            logger.error(f"写入页 {page_num} 失败 {handle.file_name}: {e}")
            return ReturnCode.WRITE_FAILED
        if bytes_written != self.page_size:
            return ReturnCode.WRITE_FAILED
        handle._set_position(page_num)
        logger.debug(f"已写入页 {page_num}: {handle.file_name}")
        return ReturnCode.OK

    def write_current_block(self, handle: Optional[PageFileHandle], mem_page: WriteBuffer) -> ReturnCode:
        if handle is None or not handle.is_open:
            return ReturnCode.FILE_HANDLE_NOT_INIT
        return self.write_block(handle.cur_page_pos, handle, mem_page)

    # ------------------------------------------------------------------
    # 容量管理
    # ------------------------------------------------------------------

    def append_empty_block(self, handle: Optional[PageFileHandle]) -> ReturnCode:
        """在文件末尾追加一个全零页"""
        if handle is None or not handle.is_open:
            return ReturnCode.FILE_HANDLE_NOT_INIT
        file = handle.file
        end = None
        try:
            end = file.seek(0, os.SEEK_END)
            bytes_written = file.write(bytes(self.page_size))
            self._flush(file)
        except OSError as e:
            logger.error(f"追加空页失败 {handle.file_name}: {e}")
            if end is not None:
                self._truncate(file, end, handle.file_name)
            return ReturnCode.WRITE_FAILED
        if bytes_written != self.page_size:
            # 短写：截回追加前的长度
            self._truncate(file, end, handle.file_name)
            return ReturnCode.WRITE_FAILED
        handle._grow(1)
        logger.debug(f"已追加页 {handle.total_num_pages - 1} 到 {handle.file_name}")
        return ReturnCode.OK

    def ensure_capacity(self, number_of_pages: int, handle: Optional[PageFileHandle]) -> ReturnCode:
        """
        保证文件至少有 number_of_pages 页。
        逐页追加，遇到第一个失败即返回该返回码；已追加的页不会回滚。
        """
        if handle is None or not handle.is_open:
            return ReturnCode.FILE_HANDLE_NOT_INIT
        if handle.total_num_pages >= number_of_pages:
            return ReturnCode.OK
        pages_to_add = number_of_pages - handle.total_num_pages
        for _ in range(pages_to_add):
            rc = self.append_empty_block(handle)
            if rc != ReturnCode.OK:
                logger.warning(f"ensure_capacity 在 {handle.total_num_pages} 页处中止: {rc.name}")
                return rc
        logger.info(f"页文件 {handle.file_name} 已扩容到 {handle.total_num_pages} 页")
        return ReturnCode.OK

    def _flush(self, file) -> None:
        file.flush()
        if self.sync_writes:
            os.fsync(file.fileno())

    def _truncate(self, file, size: int, file_name: str) -> None:
        try:
            file.truncate(size)
            self._flush(file)
        except OSError as e:
            logger.error(f"截断页文件 {file_name} 到 {size} 字节失败: {e}")
