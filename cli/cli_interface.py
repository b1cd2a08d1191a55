# -*- coding: utf-8 -*-
"""
CLI接口模块
封装页文件命令的解析、执行与输出
"""

from typing import Callable, Dict, List, Optional

from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cli.system_manager import SystemManager
from pagestore.storage import ReturnCode

DEFAULT_DUMP_BYTES = 64
DUMP_ROW_WIDTH = 16
RAW_TEXT_COMMANDS = {'writecur'}


class CLIInterface:
    """命令行接口类"""

    def __init__(self, system_manager: SystemManager, console: Optional[Console] = None):
        self.system_manager = system_manager
        self.console = console or Console()
        self.commands: Dict[str, Callable[[List[str]], Optional[ReturnCode]]] = {
            'create': self._cmd_create,
            'open': self._cmd_open,
            'close': self._cmd_close,
            'destroy': self._cmd_destroy,
            'read': self._cmd_read,
            'first': self._relative_read('read_first_block'),
            'prev': self._relative_read('read_previous_block'),
            'current': self._relative_read('read_current_block'),
            'next': self._relative_read('read_next_block'),
            'last': self._relative_read('read_last_block'),
            'write': self._cmd_write,
            'writecur': self._cmd_write_current,
            'append': self._cmd_append,
            'ensure': self._cmd_ensure,
            'pos': self._cmd_pos,
            'info': self._cmd_info,
            'dump': self._cmd_dump,
            'help': lambda args: self.print_help(),
        }

    @property
    def storage_manager(self):
        return self.system_manager.storage_manager

    @property
    def handle(self):
        return self.system_manager.handle

    def print_welcome(self):
        """打印欢迎信息"""
        self.console.print("欢迎来到 pagestore 页文件管理器！")
        self.console.print("输入 'quit' 退出，输入 'help' 查看帮助。")
        self.console.print("=" * 50)

    def print_help(self):
        """打印帮助信息"""
        self.console.print("支持的命令：", markup=False)
        self.console.print("  create NAME        创建只含一个空页的页文件", markup=False)
        self.console.print("  open NAME          打开页文件", markup=False)
        self.console.print("  close              关闭当前页文件", markup=False)
        self.console.print("  destroy NAME       删除页文件", markup=False)
        self.console.print("  read N             读取第 N 页", markup=False)
        self.console.print("  first|prev|current|next|last   相对读取", markup=False)
        self.console.print("  write N TEXT       把 TEXT 写入第 N 页（不足一页补零）", markup=False)
        self.console.print("  writecur TEXT      写入当前页", markup=False)
        self.console.print("  append             追加一个空页", markup=False)
        self.console.print("  ensure N           保证至少有 N 页", markup=False)
        self.console.print("  pos | info | dump [BYTES]", markup=False)
        self.console.print("  help - 显示此帮助信息", markup=False)
        self.console.print("  quit/exit/q - 退出系统", markup=False)

    def execute(self, line: str) -> Optional[ReturnCode]:
        """
        执行一条命令。
        存储操作返回其 ReturnCode；纯展示命令或参数错误返回 None。
        """
        parts = line.strip().split(maxsplit=1)
        if not parts:
            return None
        name = parts[0].lower()
        rest = parts[1] if len(parts) > 1 else ""
        if name in RAW_TEXT_COMMANDS:
            # 文本原样保留，不再拆分
            args = [rest] if rest else []
        else:
            args = rest.split(maxsplit=1)
        command = self.commands.get(name)
        if command is None:
            self.console.print(f"[bold red]未知命令: {escape(name)}[/bold red]")
            return None
        try:
            rc = command(args)
        except (ValueError, IndexError) as e:
            self.console.print(f"[bold red]参数错误: {escape(str(e))}[/bold red]")
            return None
        if rc is not None:
            self._print_status(name, rc)
        return rc

    def _print_status(self, name: str, rc: ReturnCode) -> None:
        if rc == ReturnCode.OK:
            self.console.print(f"[bold green]{name}: OK[/bold green]")
        else:
            self.console.print(f"[bold red]{escape(name)}: {rc.name} - {rc.message}[/bold red]")

    # --- 命令实现 ---

    def _cmd_create(self, args: List[str]) -> ReturnCode:
        return self.system_manager.create_file(args[0])

    def _cmd_open(self, args: List[str]) -> ReturnCode:
        return self.system_manager.open_file(args[0])

    def _cmd_close(self, args: List[str]) -> ReturnCode:
        return self.system_manager.close_file()

    def _cmd_destroy(self, args: List[str]) -> ReturnCode:
        return self.system_manager.destroy_file(args[0])

    def _cmd_read(self, args: List[str]) -> ReturnCode:
        return self.storage_manager.read_block(int(args[0]), self.handle, self.system_manager.page_buffer)

    def _relative_read(self, method_name: str) -> Callable[[List[str]], ReturnCode]:
        def run(args: List[str]) -> ReturnCode:
            method = getattr(self.storage_manager, method_name)
            return method(self.handle, self.system_manager.page_buffer)
        return run

    def _encode_page(self, text: str) -> bytearray:
        data = text.encode('utf-8')
        page_size = self.system_manager.page_size
        if len(data) > page_size:
            raise ValueError(f"文本长度 {len(data)} 超过页大小 {page_size}")
        page = bytearray(page_size)
        page[:len(data)] = data
        return page

    def _cmd_write(self, args: List[str]) -> ReturnCode:
        page_num = int(args[0])
        page = self._encode_page(args[1] if len(args) > 1 else "")
        rc = self.storage_manager.write_block(page_num, self.handle, page)
        if rc == ReturnCode.OK:
            self.system_manager.page_buffer[:] = page
        return rc

    def _cmd_write_current(self, args: List[str]) -> ReturnCode:
        page = self._encode_page(args[0] if args else "")
        rc = self.storage_manager.write_current_block(self.handle, page)
        if rc == ReturnCode.OK:
            self.system_manager.page_buffer[:] = page
        return rc

    def _cmd_append(self, args: List[str]) -> ReturnCode:
        return self.storage_manager.append_empty_block(self.handle)

    def _cmd_ensure(self, args: List[str]) -> ReturnCode:
        return self.storage_manager.ensure_capacity(int(args[0]), self.handle)

    def _cmd_pos(self, args: List[str]) -> None:
        self.console.print(f"current position: {self.storage_manager.get_block_pos(self.handle)}")

    def _cmd_info(self, args: List[str]) -> None:
        handle = self.handle
        if handle is None:
            self.console.print("[bold yellow]没有打开的页文件[/bold yellow]")
            return None
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("file")
        table.add_column("pages", justify="right")
        table.add_column("position", justify="right")
        table.add_column("page size", justify="right")
        table.add_column("state")
        table.add_row(
            escape(handle.file_name),
            str(handle.total_num_pages),
            str(handle.cur_page_pos),
            str(handle.page_size),
            "open" if handle.is_open else "closed",
        )
        self.console.print(table)
        return None

    def _cmd_dump(self, args: List[str]) -> None:
        """以十六进制显示最近一次读写的页缓冲区"""
        buffer = self.system_manager.page_buffer
        limit = int(args[0]) if args else DEFAULT_DUMP_BYTES
        limit = max(0, min(limit, len(buffer)))
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("offset", justify="right")
        table.add_column("hex")
        table.add_column("ascii")
        for start in range(0, limit, DUMP_ROW_WIDTH):
            chunk = bytes(buffer[start:min(start + DUMP_ROW_WIDTH, limit)])
            table.add_row(
                f"{start:08x}",
                " ".join(f"{b:02x}" for b in chunk),
                escape("".join(chr(b) if 32 <= b < 127 else "." for b in chunk)),
            )
        self.console.print(table)
        return None

    # --- 主循环 ---

    def run_script(self, content: str) -> None:
        """逐行执行脚本内容，空行和 # 开头的行被忽略"""
        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            if line.lower() in ['quit', 'exit', 'q']:
                break
            self.execute(line)

    def run(self):
        """运行CLI主循环"""
        self.print_welcome()

        while True:
            try:
                line = input("pagestore> ").strip()

                if not line:
                    continue

                # 退出条件
                if line.lower() in ['quit', 'exit', 'q']:
                    print("Goodbye!")
                    break

                self.execute(line)

            except (KeyboardInterrupt, EOFError):
                print("\n\nGoodbye!")
                break
            except Exception as e:
                logger.exception(e)
                self.console.print(f"[bold red]❌ System error: {escape(str(e))}[/bold red]")
