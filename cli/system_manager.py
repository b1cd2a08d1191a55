# system_manager.py

import os
from typing import Optional

from loguru import logger

from pagestore.storage import PageFileHandle, ReturnCode, StorageManager


class SystemManager:
    """会话管理类：持有存储管理器、当前打开的页文件句柄以及最近一次读写的页缓冲区"""

    def __init__(self, base_data_dir: str = 'data', storage_manager: Optional[StorageManager] = None):
        self.base_data_dir = base_data_dir
        self.storage_manager = storage_manager or StorageManager()
        self.handle: Optional[PageFileHandle] = None
        self.page_buffer = bytearray(self.storage_manager.page_size)

        if not os.path.exists(self.base_data_dir):
            os.makedirs(self.base_data_dir)

        self.storage_manager.init_storage_manager()

    @property
    def page_size(self) -> int:
        return self.storage_manager.page_size

    def resolve_path(self, file_name: str) -> str:
        """相对文件名解析到数据目录下"""
        if os.path.isabs(file_name):
            return file_name
        return os.path.join(self.base_data_dir, file_name)

    def create_file(self, file_name: str) -> ReturnCode:
        return self.storage_manager.create_page_file(self.resolve_path(file_name))

    def open_file(self, file_name: str) -> ReturnCode:
        """打开页文件；已有打开的文件时先关闭它"""
        if self.handle is not None and self.handle.is_open:
            self.close_file()
        rc, handle = self.storage_manager.open_page_file(self.resolve_path(file_name))
        if rc == ReturnCode.OK:
            self.handle = handle
        return rc

    def close_file(self) -> ReturnCode:
        rc = self.storage_manager.close_page_file(self.handle)
        if rc == ReturnCode.OK:
            self.handle = None
        return rc

    def destroy_file(self, file_name: str) -> ReturnCode:
        path = self.resolve_path(file_name)
        if self.handle is not None and self.handle.is_open and os.path.abspath(self.handle.file_name) == os.path.abspath(path):
            logger.warning(f"删除前先关闭当前打开的页文件: {path}")
            self.close_file()
        return self.storage_manager.destroy_page_file(path)

    def shutdown(self) -> None:
        """退出时关闭仍处于打开状态的页文件"""
        if self.handle is not None and self.handle.is_open:
            self.close_file()
        logger.info("会话已关闭")
