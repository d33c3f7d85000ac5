"""
HostPulse Collector 命令行入口 (HostPulse Collector CLI)

Usage:
    hostpulse-collector serve [--host HOST] [--port PORT]
"""
import logging

import click

from app import __version__


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, verbose):
    """HostPulse Collector - 主机指标采集与 Agent 注册中心。"""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@cli.command()
@click.option("--host", default=None, help="Bind host (default: COLLECTOR_HOST)")
@click.option("--port", type=int, default=None, help="Bind port (default: COLLECTOR_PORT)")
@click.pass_context
def serve(ctx, host, port):
    """运行 Collector（注册接口 + 周期采集）。"""
    import uvicorn

    from app.core.config import settings

    log_level = "debug" if ctx.obj["verbose"] else settings.log_level
    uvicorn.run(
        "app.main:app",
        host=host or settings.collector_host,
        port=port or settings.collector_port,
        log_level=log_level,
    )


def main():
    """CLI 入口函数。"""
    cli()


if __name__ == "__main__":
    main()
