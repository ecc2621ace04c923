"""modpkg - 模块包管理器

按名称、本地路径或 URL 定位、拉取、解包、安装并注册可加载模块，
激活时发现缺失依赖则递归安装。
"""

__version__ = "0.3.0"
