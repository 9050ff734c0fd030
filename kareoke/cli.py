"""
Kareoke 命令行工具

对单个房间的点歌队列执行入队、出队、移动等操作，并管理曲库。
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from kareoke.app import KareokeApp
from kareoke.core.errors import KareokeError
from kareoke.queue.queue_engine import EnqueueMethod, MoveMethod
from kareoke.utils.config_manager import ConfigManager
from kareoke.utils.logger import setup_logger


def build_parser() -> argparse.ArgumentParser:
    """构建命令行参数解析器"""
    parser = argparse.ArgumentParser(prog="kareoke", description="卡拉OK点歌队列管理")
    parser.add_argument("--config", default="config/config.yaml", help="配置文件路径")
    subparsers = parser.add_subparsers(dest="command", required=True)

    add_song = subparsers.add_parser("add-song", help="添加歌曲到曲库")
    add_song.add_argument("title")
    add_song.add_argument("artist")
    add_song.add_argument("--source", default="")
    add_song.add_argument("--filename", default="")
    add_song.add_argument("--duration", type=int, default=0)
    add_song.add_argument("--song-id", default=None)

    songs = subparsers.add_parser("songs", help="列出曲库歌曲")
    songs.add_argument("--limit", type=int, default=50)
    songs.add_argument("--page", type=int, default=0)

    enqueue = subparsers.add_parser("enqueue", help="点歌")
    enqueue.add_argument("queue_id")
    enqueue.add_argument("song_id")
    enqueue.add_argument("--method", choices=[m.value for m in EnqueueMethod], default=EnqueueMethod.END.value)
    enqueue.add_argument("--after", type=float, default=None, help="after 方式的锚点位置")

    list_items = subparsers.add_parser("list", help="列出队列")
    list_items.add_argument("queue_id")
    list_items.add_argument("--limit", type=int, default=None)

    for name, help_text in (("peek", "查看队首"), ("dequeue", "取出队首"), ("clear", "清空队列"),
                            ("now-playing", "查看当前播放"), ("play-next", "播放下一首")):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument("queue_id")

    move = subparsers.add_parser("move", help="移动条目")
    move.add_argument("queue_id")
    move.add_argument("position", type=float)
    move.add_argument("method", choices=[m.value for m in MoveMethod])
    move.add_argument("--after", type=float, default=None, help="after 方式的锚点位置")

    remove = subparsers.add_parser("remove", help="移除条目")
    remove.add_argument("queue_id")
    remove.add_argument("position", type=float)

    return parser


async def run_command(app: KareokeApp, args: argparse.Namespace) -> List[str]:
    """
    执行命令

    Args:
        app: 已创建的应用实例
        args: 解析后的命令行参数

    Returns:
        要输出的行
    """
    await app.initialize()

    if args.command == "add-song":
        song = await app.song_catalog.add_song(
            title=args.title,
            artist=args.artist,
            source=args.source,
            filename=args.filename,
            duration=args.duration,
            song_id=args.song_id
        )
        return [f"{song.song_id}\t{song}"]

    if args.command == "songs":
        entries = await app.song_catalog.list_songs(limit=args.limit, page=args.page)
        return [f"{entry.song.song_id}\t{entry.song}\t播放 {entry.plays} 次" for entry in entries]

    engine = app.get_queue(args.queue_id)

    if args.command == "enqueue":
        item = await engine.enqueue(args.song_id, args.method, args.after)
        return [str(item)]
    if args.command == "list":
        return [str(item) for item in await engine.get_items(args.limit)]
    if args.command == "peek":
        item = await engine.peek()
        return [str(item) if item else "队列为空"]
    if args.command == "dequeue":
        item = await engine.dequeue()
        return [str(item) if item else "队列为空"]
    if args.command == "clear":
        await engine.clear()
        return ["队列已清空"]
    if args.command == "move":
        new_position = await engine.move(args.position, args.method, args.after)
        return [f"新位置: {new_position:g}" if new_position is not None else "位置未变化"]
    if args.command == "remove":
        await engine.remove_at(args.position)
        return ["条目已移除"]
    if args.command == "now-playing":
        song = await engine.get_current_track()
        return [str(song) if song else "当前没有播放"]
    if args.command == "play-next":
        item = await engine.play_next()
        return [f"正在播放: {item.song}" if item else "队列为空"]

    raise ValueError(f"未知命令: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    命令行入口函数

    Returns:
        int: 退出代码（0表示成功，1表示错误）
    """
    args = build_parser().parse_args(argv)

    try:
        config = ConfigManager(args.config)
    except FileNotFoundError as e:
        print(f"❌ 配置文件错误: {e}", file=sys.stderr)
        return 1

    setup_logger(
        log_level=config.get_log_level(),
        log_file=config.get_log_file(),
        max_size=config.get_log_max_size(),
        backup_count=config.get_log_backup_count()
    )
    logger = logging.getLogger("kareoke")

    try:
        app = KareokeApp(config)
        for line in asyncio.run(run_command(app, args)):
            print(line)
    except KareokeError as e:
        logger.debug(f"命令执行失败: {e}", exc_info=True)
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.error(f"❌ 执行命令时发生意外错误: {e}", exc_info=True)
        return 1

    return 0
