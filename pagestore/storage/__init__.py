"""
Storage 子系统：定长页文件的创建、寻址与扩容。

模块清单：
- constants: 页大小与位置哨兵
- return_codes: 返回码枚举与可选的异常转换
- page_file_handle: 已打开页文件的句柄
- storage_manager: 文件生命周期、块寻址、容量管理
"""

from .constants import PAGE_SIZE, NO_POSITION
from .return_codes import (
    ReturnCode,
    StorageError,
    FileUnavailableError,
    HandleNotInitializedError,
    WriteFailedError,
    PageOutOfRangeError,
    raise_for_code,
)
from .page_file_handle import PageFileHandle
from .storage_manager import StorageManager

# 供偏好函数式调用的上层使用的默认实例
_default_manager = StorageManager()

init_storage_manager = _default_manager.init_storage_manager
create_page_file = _default_manager.create_page_file
open_page_file = _default_manager.open_page_file
close_page_file = _default_manager.close_page_file
destroy_page_file = _default_manager.destroy_page_file
read_block = _default_manager.read_block
get_block_pos = _default_manager.get_block_pos
read_first_block = _default_manager.read_first_block
read_previous_block = _default_manager.read_previous_block
read_current_block = _default_manager.read_current_block
read_next_block = _default_manager.read_next_block
read_last_block = _default_manager.read_last_block
write_block = _default_manager.write_block
write_current_block = _default_manager.write_current_block
append_empty_block = _default_manager.append_empty_block
ensure_capacity = _default_manager.ensure_capacity
