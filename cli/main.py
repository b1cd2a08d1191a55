# main.py

import argparse
import sys
import os

# 确保所有模块都能被找到
# 添加项目根目录到 Python 路径
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from loguru import logger

from cli.system_manager import SystemManager
from cli.cli_interface import CLIInterface
from pagestore.storage import StorageManager


def configure_logging(level: str = "WARNING") -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="pagestore 页文件管理器")
    parser.add_argument('--data-dir', default='data', help="页文件所在目录")
    parser.add_argument('--log-level', default='WARNING', help="loguru 日志级别")
    parser.add_argument('--no-sync', action='store_true', help="写页后不执行 fsync")
    return parser.parse_args(argv)


def main(argv=None):
    """主函数，启动页文件管理器的交互式命令行。"""
    args = parse_args(argv)
    configure_logging(args.log_level)
    system_manager = None
    try:
        storage_manager = StorageManager(sync_writes=not args.no_sync)
        system_manager = SystemManager(base_data_dir=args.data_dir, storage_manager=storage_manager)
        cli = CLIInterface(system_manager=system_manager)

        # 检查是否从文件重定向输入
        if not sys.stdin.isatty():
            cli.run_script(sys.stdin.read())
        else:
            cli.run()

    except Exception as e:
        print(f"❌ 系统启动或运行时发生致命错误: {str(e)}")
        import traceback
        traceback.print_exc()
    finally:
        # 确保系统在退出时能正确关闭
        if system_manager:
            system_manager.shutdown()


if __name__ == "__main__":
    main()
