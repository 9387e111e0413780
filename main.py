# main.py

import argparse
import asyncio
import json
import logging
import os
import sys

from rich.console import Console
from rich.table import Table

# --- 核心模块导入 ---
from config import Config
from core.errors import PatchTimeoutError, PatchWorkerError, RequestValidationError
from core.message_types import PatchResultPayload, parse_request
from core.worker import PatchWorker, apply_edits_with_worker

# --- 路径修正代码 ---
project_root = os.path.dirname(os.path.abspath(__file__)) if "__file__" in globals() else os.getcwd()
if project_root not in sys.path:
    sys.path.insert(0, project_root)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_TIMEOUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="将一批 {oldText, newText} 模糊补丁应用到文档")
    parser.add_argument("request", help="请求 JSON 文件路径，使用 - 从标准输入读取")
    parser.add_argument("--threshold", type=float, default=None, help="相似度阈值 (0-1)，覆盖请求与配置中的值")
    parser.add_argument("--output", "-o", default=None, help="结果 JSON 输出路径，缺省写到标准输出")
    parser.add_argument("--timeout", type=float, default=None, help="等待结果的超时秒数")
    parser.add_argument("--log-level", default=None, help="日志级别，例如 DEBUG / INFO")
    return parser


def read_request(source: str) -> dict:
    if source == "-":
        return json.load(sys.stdin)
    with open(source, encoding="utf-8") as f:
        return json.load(f)


def render_summary(console: Console, result: PatchResultPayload) -> None:
    """在 stderr 上打印逐条编辑的汇总表"""
    table = Table(title="补丁结果")
    table.add_column("#", justify="right")
    table.add_column("index", justify="right")
    table.add_column("strategy")
    table.add_column("similarity", justify="right")
    table.add_column("status")

    for position, outcome in enumerate(result.results, start=1):
        table.add_row(
            str(position),
            "-" if outcome.index is None else str(outcome.index),
            outcome.strategy or "-",
            "-" if outcome.similarity is None else f"{outcome.similarity:.2f}",
            "[green]applied[/green]" if outcome.applied else f"[red]{outcome.error or 'failed'}[/red]",
        )
    console.print(table)


async def run(args: argparse.Namespace, config: Config, console: Console) -> int:
    try:
        payload = read_request(args.request)
        request = parse_request(payload)
    except (OSError, json.JSONDecodeError, RequestValidationError) as e:
        console.print(f"[red]无法读取请求: {e}[/red]")
        return EXIT_ERROR

    threshold = args.threshold if args.threshold is not None else request.threshold
    worker = PatchWorker.from_config(config)

    try:
        result = await apply_edits_with_worker(
            request.content,
            request.diffs,
            threshold,
            on_progress=lambda message: console.print(f"[dim]{message}[/dim]"),
            timeout=args.timeout,
            worker=worker,
        )
    except PatchTimeoutError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return EXIT_TIMEOUT
    except PatchWorkerError as e:
        console.print(f"[red]补丁计算失败 ({e.error_type}): {e}[/red]")
        if e.stack:
            logging.debug(e.stack)
        return EXIT_ERROR

    output = json.dumps(result.to_wire(), ensure_ascii=False, indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
    else:
        sys.stdout.write(output + "\n")

    render_summary(console, result)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = Config()
    config.setup_logging(args.log_level)
    logging.info(f"会话日志目录: {config.session_dir}")

    console = Console(stderr=True)
    return asyncio.run(run(args, config, console))


if __name__ == "__main__":
    sys.exit(main())
