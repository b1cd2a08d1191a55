import os
from typing import BinaryIO, Optional

from .constants import PAGE_SIZE


class PageFileHandle:
    """
    一个已打开页文件的句柄。
    独占持有底层文件对象，并记录总页数和当前页位置；
    文件对象只会在 release() 中被关闭一次。
    """
    def __init__(self, file_name: str, file: BinaryIO, page_size: int = PAGE_SIZE):
        self._file_name = file_name
        self._file: Optional[BinaryIO] = file
        self.page_size = page_size
        file_size = os.fstat(file.fileno()).st_size
        # 整除：末尾不足一页的字节不计入页数
        self._total_num_pages = file_size // page_size
        self.trailing_bytes = file_size % page_size
        self._cur_page_pos = 0

    @property
    def file_name(self) -> str:
        return self._file_name

    @property
    def total_num_pages(self) -> int:
        return self._total_num_pages

    @property
    def cur_page_pos(self) -> int:
        return self._cur_page_pos

    @property
    def is_open(self) -> bool:
        return self._file is not None and not self._file.closed

    @property
    def file(self) -> BinaryIO:
        """底层文件对象；句柄关闭后访问会抛出 ValueError"""
        if not self.is_open:
            raise ValueError(f"Page file handle for {self._file_name!r} is closed.")
        return self._file

    def page_offset(self, page_num: int) -> int:
        """根据页号计算文件内的字节偏移 (页号从0开始)"""
        return page_num * self.page_size

    def contains(self, page_num: int) -> bool:
        return 0 <= page_num < self._total_num_pages

    def _set_position(self, page_num: int) -> None:
        self._cur_page_pos = page_num

    def _grow(self, pages: int = 1) -> None:
        self._total_num_pages += pages

    def release(self) -> bool:
        """
        关闭底层文件。已经关闭过则返回 False。
        关闭时的 OSError 会向上抛出，但句柄仍视为已释放。
        """
        if not self.is_open:
            return False
        file, self._file = self._file, None
        file.close()
        return True

    def __enter__(self) -> 'PageFileHandle':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return (f"<PageFileHandle file={self._file_name!r} pages={self._total_num_pages} "
                f"pos={self._cur_page_pos} {state}>")

    def __del__(self):
        # 确保对象被垃圾回收时，文件句柄也能被关闭
        if getattr(self, '_file', None) is not None and not self._file.closed:
            self._file.close()
