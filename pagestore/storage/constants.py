# constants.py

# 页大小固定为 4KB，所有寻址计算都以此为单位
PAGE_SIZE = 4096

# 句柄为空时 get_block_pos 返回的哨兵值
NO_POSITION = -1
