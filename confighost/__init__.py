"""
confighost
启动 Web 宿主，并在 Web 管道初始化之前挂载远程配置中心
"""

__version__ = "1.0.0"
