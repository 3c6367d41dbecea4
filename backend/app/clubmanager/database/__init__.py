"""数据库模型与会话"""
