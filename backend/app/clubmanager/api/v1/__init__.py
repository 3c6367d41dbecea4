"""/api 路由"""
