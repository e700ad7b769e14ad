"""ImageVault - 镜像制品仓库"""

__version__ = "0.1.0"
