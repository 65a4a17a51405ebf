"""
Utilities for loading and validating the configuration of an Alfresco client.

A configuration is a plain (JSON-compatible) dictionary.  It can be read from a YAML or JSON
file (:py:func:`load_from_file`), overlaid on defaults (:py:func:`merge_config`), and have its
connection parameters filled in from the environment (:py:func:`config_from_env`).  The
parameters recognized by :py:class:`~alfsoap.client.AlfrescoClient` are:

``url``
    _str_ (required).  the base URL of the Alfresco server (e.g. ``http://localhost:8080``);
    the SOAP endpoints are found below ``{url}/alfresco/api/``.
``username``
    _str_ (required).  the name of the user to start sessions as
``password``
    _str_ (required).  the user's password
``store``
    _dict_ (optional).  the store to navigate, given by ``scheme`` and ``address``
    (default: ``workspace`` and ``SpacesStore``)
``timeout``
    _float_ (optional).  the number of seconds to wait on a service response (default: 30)
``max_path_depth``
    _int_ (optional).  the maximum number of ancestors walked when resolving a node's path
    (default: 50)
``ca_bundle``
    _str_ (optional).  the path to a CA certificate bundle for verifying the server's site
    certificate
"""
import os, json
from collections.abc import Mapping
from copy import deepcopy

import yaml

DEF_STORE_SCHEME = "workspace"
DEF_STORE_ADDRESS = "SpacesStore"
DEF_TIMEOUT = 30.0
DEF_MAX_PATH_DEPTH = 50

ENV_URL = "ALFRESCO_URL"
ENV_USER = "ALFRESCO_USER"
ENV_PASSWORD = "ALFRESCO_PASSWORD"

DEFAULTS = {
    "store": {
        "scheme":  DEF_STORE_SCHEME,
        "address": DEF_STORE_ADDRESS
    },
    "timeout":        DEF_TIMEOUT,
    "max_path_depth": DEF_MAX_PATH_DEPTH
}

class ConfigurationException(Exception):
    """
    an exception indicating a missing or inconsistent configuration parameter
    """

    def __init__(self, message: str=None, param: str=None, cause: Exception=None):
        if not message:
            message = "Configuration error"
            if param:
                message += f" in parameter {param}"
            if cause:
                message += f": {str(cause)}"
        super(ConfigurationException, self).__init__(message)
        self.param = param
        self.cause = cause

def load_from_file(filepath: str) -> Mapping:
    """
    read the configuration from the given file.  The file is parsed as JSON if its name ends
    in ".json"; otherwise, it is parsed as YAML.

    :raises IOError:    if the file can not be opened or read
    :raises ValueError: if the file contents can not be parsed
    """
    with open(filepath) as fd:
        if filepath.endswith('.json'):
            out = json.load(fd)
        else:
            out = yaml.safe_load(fd)

    if out is None:
        out = {}
    if not isinstance(out, Mapping):
        raise ValueError(f"{filepath}: configuration does not contain a dictionary")
    return out

def merge_config(primary: Mapping, defconf: Mapping) -> Mapping:
    """
    merge the primary configuration on top of the default configuration and return the
    result.  Dictionaries found in both are merged recursively; otherwise, values in
    ``primary`` win.  Neither input is altered.
    """
    out = deepcopy(defconf)
    for key, val in primary.items():
        if isinstance(val, Mapping) and isinstance(out.get(key), Mapping):
            out[key] = merge_config(val, out[key])
        else:
            out[key] = deepcopy(val)
    return out

def config_from_env(config: Mapping=None, env: Mapping=None) -> Mapping:
    """
    return a copy of the given configuration with its connection parameters (``url``,
    ``username``, ``password``) filled in from the environment wherever they are not
    already set.
    """
    if env is None:
        env = os.environ
    out = deepcopy(config) if config else {}
    for param, var in (("url", ENV_URL), ("username", ENV_USER), ("password", ENV_PASSWORD)):
        if not out.get(param) and env.get(var):
            out[param] = env[var]
    return out

def validate(config: Mapping) -> Mapping:
    """
    check the given configuration for required and properly typed parameters, returning a
    copy merged with the defaults.

    :raises ConfigurationException:  if a required parameter is missing or a value is invalid
    """
    missing = [p for p in ("url", "username", "password") if not config.get(p)]
    if missing:
        raise ConfigurationException("Missing required config parameter%s: %s" %
                                     ("s" if len(missing) > 1 else "", ", ".join(missing)),
                                     missing[0])
    out = merge_config(config, DEFAULTS)

    store = out.get("store")
    if not isinstance(store, Mapping) or not store.get("scheme") or not store.get("address"):
        raise ConfigurationException("store: must be a dictionary with scheme and address values",
                                     "store")

    for param, typ in (("timeout", float), ("max_path_depth", int)):
        try:
            out[param] = typ(out[param])
        except (TypeError, ValueError) as ex:
            raise ConfigurationException(f"{param}: not a valid number: {out[param]}",
                                         param, ex) from ex
        if out[param] <= 0:
            raise ConfigurationException(f"{param}: must be a positive number", param)

    out['url'] = out['url'].rstrip('/')
    return out
