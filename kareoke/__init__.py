"""
Kareoke - 卡拉OK房间的共享点歌队列

基于分数位置的有序队列引擎：条目可以插入或移动到任意位置，
而无需改写队列中的其他条目。
"""

__version__ = "1.0.0"
