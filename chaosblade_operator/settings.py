"""Runtime settings of the operator and command-line parsing for them."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Sequence

from .version import PRODUCT, VERSION

OPERATOR_CHAOSBLADE_PATH = "/opt/chaosblade"
OPERATOR_CHAOSBLADE_BIN = "/opt/chaosblade/bin"
OPERATOR_CHAOSBLADE_LIB = "/opt/chaosblade/lib"
OPERATOR_CHAOSBLADE_YAML = "/opt/chaosblade/yaml"
OPERATOR_CHAOSBLADE_BLADE = "/opt/chaosblade/blade"

DEFAULT_IMAGE_REPOSITORY = "chaosbladeio/chaosblade-tool"
DEFAULT_PULL_POLICY = "IfNotPresent"
DEFAULT_REMOVE_BLADE_INTERVAL = "72h"
DEFAULT_NAMESPACE = "chaosblade"

DEFAULT_LOG_LEVEL = "info"
DEFAULT_RECONCILE_COUNT = 20
DEFAULT_QPS = 20.0

AHAS = "ahas"
COMMUNITY = "community"

_PROD_ENV = "prod"
_PUBLIC_REGION = "cn-public"

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


@dataclass
class ChaosBladeSettings:
    """Settings of the chaosblade tool deployed by the operator."""

    version: str = VERSION
    image_repository: str = DEFAULT_IMAGE_REPOSITORY
    pull_policy: str = DEFAULT_PULL_POLICY
    daemonset_enable: bool = False
    remove_blade_interval: str = DEFAULT_REMOVE_BLADE_INTERVAL
    download_url: str = ""
    namespace: str = DEFAULT_NAMESPACE


@dataclass
class AliyunSettings:
    """Cloud provider settings used by the ahas product."""

    region_id: str = ""
    environment: str = ""


@dataclass
class OperatorSettings:
    """All operator settings together."""

    log_level: str = DEFAULT_LOG_LEVEL
    reconcile_count: int = DEFAULT_RECONCILE_COUNT
    qps: float = DEFAULT_QPS
    product: str = PRODUCT
    chaosblade: ChaosBladeSettings = field(default_factory=ChaosBladeSettings)
    aliyun: AliyunSettings = field(default_factory=AliyunSettings)

    def image_repository(self) -> str:
        """Image repository of the chaosblade tool for the configured product."""
        if self.product == AHAS:
            return aliyun_image_repository(self.aliyun.region_id, self.aliyun.environment)
        if self.product == COMMUNITY:
            return self.chaosblade.image_repository
        raise ValueError(f"unknown product {self.product!r}")


def aliyun_image_repository(region_id: str, environment: str) -> str:
    """Image repository of the chaosblade tool on the cloud provider's registry."""
    if region_id == _PUBLIC_REGION:
        if environment == _PROD_ENV:
            return "registry.cn-hangzhou.aliyuncs.com/ahascr-public/chaosblade-tool"
        return "registry.cn-hangzhou.aliyuncs.com/ahas-public/chaosblade-tool"
    if environment == _PROD_ENV:
        return f"registry-vpc.{region_id}.aliyuncs.com/ahascr/chaosblade-tool"
    return f"registry-vpc.{region_id}.aliyuncs.com/ahas/chaosblade-tool"


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


def build_operator_parser() -> argparse.ArgumentParser:
    """Argument parser for every operator flag."""
    parser = argparse.ArgumentParser(prog="chaosblade-operator", allow_abbrev=False)
    parser.add_argument("--log-level", default=DEFAULT_LOG_LEVEL,
                        help="Log level, such as panic|fatal|error|warn|info|debug|trace")
    parser.add_argument("--reconcile-count", type=int, default=DEFAULT_RECONCILE_COUNT,
                        help="Max concurrent reconciles count")
    parser.add_argument("--qps", type=float, default=DEFAULT_QPS, help="qps of kubernetes client")
    parser.add_argument("--aliyun-region-id", default="", help="Region id for cloud provider")
    parser.add_argument("--aliyun-environment", default="", help="Environment for cloud provider")
    parser.add_argument("--chaosblade-version", default=VERSION, help="Chaosblade tool version")
    parser.add_argument("--chaosblade-image-repository", default=DEFAULT_IMAGE_REPOSITORY,
                        help="Image repository of chaosblade tool")
    parser.add_argument("--chaosblade-image-pull-policy", default=DEFAULT_PULL_POLICY,
                        help="Pulling policy of chaosblade image")
    parser.add_argument("--daemonset-enable", type=_parse_bool, nargs="?", const=True, default=False,
                        help="Deploy chaosblade daemonset to resolve chaos experiment environment of network")
    parser.add_argument("--remove-blade-interval", default=DEFAULT_REMOVE_BLADE_INTERVAL,
                        help="Periodically clean up blades whose state is destroying")
    parser.add_argument("--chaosblade-download-url", default="",
                        help="The chaosblade download address used in download mode")
    parser.add_argument("--chaosblade-namespace", default=DEFAULT_NAMESPACE,
                        help="The chaosblade deployment namespace")
    return parser


def parse_operator_args(argv: Sequence[str] | None = None) -> OperatorSettings:
    """Parse operator flags into settings; exits on invalid flags."""
    args = build_operator_parser().parse_args(argv)
    return OperatorSettings(
        log_level=args.log_level,
        reconcile_count=args.reconcile_count,
        qps=args.qps,
        product=PRODUCT,
        chaosblade=ChaosBladeSettings(
            version=args.chaosblade_version,
            image_repository=args.chaosblade_image_repository,
            pull_policy=args.chaosblade_image_pull_policy,
            daemonset_enable=args.daemonset_enable,
            remove_blade_interval=args.remove_blade_interval,
            download_url=args.chaosblade_download_url,
            namespace=args.chaosblade_namespace,
        ),
        aliyun=AliyunSettings(region_id=args.aliyun_region_id, environment=args.aliyun_environment),
    )