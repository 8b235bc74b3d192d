"""
宿主入口
构建默认宿主 -> 追加远程配置源 -> 注册 Web 管道 -> 阻塞运行
"""
import sys
from collections.abc import Sequence

from confighost.configuration.config_server import add_config_server
from confighost.hosting.builder import HostBuilder, WebPipeline
from confighost.web import startup


def create_host_builder(
    args: Sequence[str],
    register_web_pipeline: WebPipeline = startup.configure,
) -> HostBuilder:
    """创建宿主构建器（不会触发任何网络请求，请求发生在 build() 时）"""
    return (
        HostBuilder.create_default(args)
        .configure_app_configuration(
            lambda context, config: add_config_server(config, context.hosting_environment)
        )
        .configure_web_host(register_web_pipeline)
    )


def main(argv: Sequence[str] | None = None) -> None:
    """运行服务器"""
    args = sys.argv[1:] if argv is None else argv
    create_host_builder(args).build().run()


if __name__ == "__main__":
    main()
