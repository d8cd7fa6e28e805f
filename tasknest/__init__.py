"""TaskNest：个人任务管理服务"""
