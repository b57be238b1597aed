"""项目内使用的自定义异常定义。"""


class GalleryRefreshError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(GalleryRefreshError):
    """配置不合法时抛出。"""


class RenderError(GalleryRefreshError):
    """模型渲染失败。"""


class EmptySceneError(RenderError):
    """模型文件中没有任何可渲染的几何体。"""


class EmptyRenderError(RenderError):
    """渲染结果为空白图像。"""


class PreviewWriteError(GalleryRefreshError):
    """预览图写入失败。"""


class StepInvocationError(GalleryRefreshError):
    """外部步骤无法启动。"""
