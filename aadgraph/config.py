import json
import logging
import os
from dataclasses import dataclass
from dataclasses import field
from typing import Tuple

from aadgraph.lib import constants
from aadgraph.lib import error

"""
Connection settings, and reading them from a config file.

A config file is json (or yaml, if pyyaml is installed) with one
object per section:

{
    "default": {
        "aadgraph_access_token": "eyJ0eXAiOiJKV1Qi...",
        "aadgraph_tenant": "contoso.com"
    },
    "test": {
        "inherits": "default",
        "aadgraph_api_version": "1.5"
    }
}
"""


@dataclass
class GraphSettings:
    """
    Settings of a GraphConnection.

    Attributes:
        api_version: value of the api-version query parameter
        graph_domain_name: host name of the service
        is_retry_enabled: retry failed requests at all
        retry_on_exceptions: error classes that are worth a retry
        wait_before_retry: seconds to sleep between attempts
        total_attempts: attempts per request, clamped to 1..MAX_RETRY_ATTEMPTS
        timeout: seconds, passed on to the transport
    """

    api_version: str = constants.DEFAULT_API_VERSION
    graph_domain_name: str = constants.DEFAULT_GRAPH_DOMAIN
    is_retry_enabled: bool = True
    retry_on_exceptions: Tuple[type, ...] = field(
        default_factory=lambda: (
            error.ServiceUnavailableError,
            error.InternalServerError,
        )
    )
    wait_before_retry: float = 3.0
    total_attempts: int = 3
    timeout: float = 30.0

    def __post_init__(self) -> None:
        ## 0 or less means a single attempt, no retry
        self.total_attempts = max(
            1, min(int(self.total_attempts), constants.MAX_RETRY_ATTEMPTS)
        )
        if self.wait_before_retry < 0:
            raise error.ValidationError("wait_before_retry can't be negative")
        self.retry_on_exceptions = tuple(self.retry_on_exceptions)


def config_section(config, section="default"):
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    return ret


def read_config(fn):
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config"
        for config_file in (
            f"{cfgdir}/aadgraph/graph.conf",
            f"{cfgdir}/aadgraph/graph.yaml",
            f"{cfgdir}/aadgraph/graph.json",
            "/etc/aadgraph/graph.conf",
        ):
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return None

    try:
        try:
            with open(fn, "rb") as config_file:
                return json.load(config_file)
        except json.decoder.JSONDecodeError:
            ## Late import, wrapped in try/except.  yaml is external module,
            ## and not included in the requirements as for now.
            try:
                import yaml

                try:
                    with open(fn, "rb") as config_file:
                        return yaml.load(config_file, yaml.Loader)
                except yaml.YAMLError:
                    logging.error(
                        f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax."
                    )
            except ImportError:
                logging.error(
                    f"config file {fn} exists but is not valid json, and pyyaml is not installed."
                )
    except FileNotFoundError:
        logging.info("no config file found")
    except ValueError:
        logging.error("error in config file.  It will be ignored", exc_info=True)
    return {}
