"""
HostPulse Agent 命令行入口模块。

提供 CLI 命令：run（前台运行 Agent）、check（验证配置文件）和 sample（打印一次指标快照）。
"""
import asyncio
import json
import logging
import sys

import click

from hostpulse_agent import __version__
from hostpulse_agent.config import ConfigError, load_config


@click.group(invoke_without_command=True)
@click.option("--config", "-c", default="/etc/hostpulse/agent.yaml", help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, config, verbose):
    """HostPulse Agent - 轻量级主机指标代理。"""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # 未指定子命令时，显示基本信息
    if ctx.invoked_subcommand is None:
        click.echo(f"HostPulse Agent v{__version__}")
        click.echo(f"Config: {config}")
        click.echo("Use --help for available commands")


def _load(ctx):
    config_path = ctx.obj["config_path"]
    try:
        return load_config(config_path)
    except (FileNotFoundError, ConfigError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def run(ctx):
    """以前台模式运行 Agent。"""
    logger = logging.getLogger("hostpulse-agent")
    cfg = _load(ctx)

    logger.info(f"Starting HostPulse Agent v{__version__}")
    logger.info(f"Collector: {cfg.collector.url}")
    logger.info(f"Listening: {cfg.server.host}:{cfg.server.port}")
    logger.info(f"Register interval: {cfg.collector.register_interval}s")

    from hostpulse_agent.runtime import AgentRuntime

    runtime = AgentRuntime(cfg)
    try:
        asyncio.run(runtime.start())
    except Exception:
        logger.exception("Agent crashed")
        sys.exit(1)


@cli.command()
@click.pass_context
def check(ctx):
    """验证配置文件是否正确。"""
    config_path = ctx.obj["config_path"]
    cfg = _load(ctx)
    click.echo(f"✅ Config OK: {config_path}")
    click.echo(f"   Collector: {cfg.collector.url}")
    click.echo(f"   Listening: {cfg.server.host}:{cfg.server.port}")
    click.echo(f"   Host: {cfg.host.name or '(auto-detect)'}")
    click.echo(f"   Memory source: {cfg.metrics.proc_dir or 'psutil'}")


@cli.command()
@click.pass_context
def sample(ctx):
    """采集一次指标并以 JSON 打印（不注册、不上报）。"""
    from hostpulse_agent.collector import MetricsSampler, MetricUnavailable

    cfg = _load(ctx)
    try:
        metrics = MetricsSampler.from_config(cfg).sample()
    except MetricUnavailable as e:
        click.echo(f"❌ Metrics unavailable: {e}", err=True)
        sys.exit(1)
    click.echo(json.dumps(metrics.to_dict(), indent=2))


def main():
    """CLI 入口函数。"""
    cli()


if __name__ == "__main__":
    main()
