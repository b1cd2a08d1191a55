"""
pagestore：面向存储引擎最底层的定长页文件管理。
"""
