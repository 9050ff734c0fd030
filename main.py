#!/usr/bin/env python3
"""
Kareoke 点歌队列 - 命令行主程序入口

负责配置加载、日志设置，并把命令分发给队列引擎和曲库。
"""
from kareoke.cli import main

if __name__ == "__main__":
    exit(main())
