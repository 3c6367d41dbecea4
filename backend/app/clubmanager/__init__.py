"""ClubManager - 广场舞俱乐部管理后端"""

__version__ = "1.0.0"
