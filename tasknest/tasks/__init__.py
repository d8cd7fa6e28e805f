"""
任务模块：访问控制（access）+ 列表查询（query）+ 接口数据模型（schemas）
"""
