"""
a command-line interface for browsing an Alfresco repository.  The :py:func:`main` function
provides the implementation; see ``scripts/alfbrowse.py``.
"""
import asyncio, sys, os, re, json, logging
from argparse import ArgumentParser

import yaml

from . import config
from .config import ConfigurationException
from .client import AlfrescoClient
from .exceptions import AlfrescoException, MalformedReference

prog = re.sub(r'\.py$', '', os.path.basename(sys.argv[0]))

class Failure(Exception):
    """
    an exception indicating that the command failed and should exit with a given code
    """
    def __init__(self, message, exitcode=1, cause=None):
        super(Failure, self).__init__(message)
        self.exitcode = exitcode
        self.cause = cause

def define_options(progname):
    """
    return an ArgumentParser instance that is configured with options
    for the command-line interface.
    """
    description = "List the children of a node in an Alfresco repository (by default, those " \
                  "of Company Home), printing them as JSON"
    epilog = "Connection parameters not given via options or a config file are taken from the " \
             "ALFRESCO_URL, ALFRESCO_USER, and ALFRESCO_PASSWORD environment variables."

    parser = ArgumentParser(progname, None, description, epilog)

    parser.add_argument('-c', '--config-file', type=str, dest='cfgfile', metavar='FILE',
                        help="a file (YAML or JSON) containing the client configuration to use")
    parser.add_argument('-u', '--url', type=str, dest='url', metavar='URL',
                        help="the base URL of the Alfresco server (e.g. http://localhost:8080)")
    parser.add_argument('-U', '--user', type=str, dest='username', metavar='NAME',
                        help="the user to log in as")
    parser.add_argument('-r', '--root', action='store_true', dest='root',
                        help="print the record for the repository root (Company Home) instead "
                             "of listing children")
    parser.add_argument('-l', '--logfile', action='store', dest='logfile', type=str, metavar='FILE',
                        help="write messages that normally go to standard error to FILE as well.  "+
                             "If -q is also specified, the messages will only go to the logfile")
    parser.add_argument('-v', '--verbose', action='store_true', dest='verbose',
                        help="print more (debug) messages to standard error and/or the log file")
    parser.add_argument('-q', '--quiet', action='store_true', dest='quiet',
                        help="suppress all error and warning messages to standard error")
    parser.add_argument('noderef', metavar='NODEREF', type=str, nargs='?', default=None,
                        help="the node to list the children of (e.g. workspace://SpacesStore/...)")
    return parser

def configure_logging(opts):
    rootlog = logging.getLogger()
    level = (opts.verbose and logging.DEBUG) or logging.INFO
    if opts.logfile:
        # write messages to a log file
        fmt = "%(asctime)s " + prog + ".%(name)s %(levelname)s: %(message)s"
        hdlr = logging.FileHandler(opts.logfile)
        hdlr.setFormatter(logging.Formatter(fmt))
        hdlr.setLevel(logging.DEBUG)
        rootlog.addHandler(hdlr)
        rootlog.setLevel(level)

    # configure a default log handler
    if not opts.quiet:
        fmt = prog + ": %(levelname)s: %(message)s"
        hdlr = logging.StreamHandler(sys.stderr)
        hdlr.setFormatter(logging.Formatter(fmt))
        hdlr.setLevel(level if opts.verbose else logging.WARNING)
        rootlog.addHandler(hdlr)
        rootlog.setLevel(level)
    elif not rootlog.handlers:
        rootlog.addHandler(logging.NullHandler())

def read_config(filepath):
    """
    read the configuration from a file having the given filepath

    :except Failure:  if the contents contains syntax or format errors
    :except IOError:  if a failure occurs while opening or reading the file
    """
    try:
        return config.load_from_file(filepath)
    except (ValueError, yaml.YAMLError) as ex:
        raise Failure("Config parsing error: "+str(ex), 3, ex)

def build_config(opts, env=None):
    """
    assemble the client configuration from the config file, the command-line options, and
    the environment
    """
    cfg = {}
    if opts.cfgfile:
        try:
            cfg = read_config(opts.cfgfile)
        except EnvironmentError as ex:
            raise Failure("problem reading config file, {0}: {1}"
                          .format(opts.cfgfile, ex.strerror)) from ex

    if opts.url:
        cfg['url'] = opts.url
    if opts.username:
        cfg['username'] = opts.username
    return config.config_from_env(cfg, env)

async def browse(cli: AlfrescoClient, noderef=None, root=False, out=None):
    """
    write to ``out`` (default: standard output) the JSON description of the repository root
    (if ``root`` is True) or the children of the given node (or of the root, if not given).
    """
    if not out:
        out = sys.stdout
    async with cli:
        if root:
            data = (await cli.get_company_home()).to_dict()
        else:
            if not noderef:
                noderef = (await cli.get_company_home()).nodeRef
            nodes = await cli.get_children(noderef)
            if nodes.dropped:
                cli.log.warning("%d entries in the response could not be interpreted",
                                len(nodes.dropped))
            data = [n.to_dict() for n in nodes]

    json.dump(data, out, indent=2)
    out.write("\n")

def main(progname, args):
    """
    list the children of a repository node
    """
    parser = define_options(progname)
    opts = parser.parse_args(args)
    configure_logging(opts)

    cfg = build_config(opts)
    try:
        cli = AlfrescoClient(cfg, logging.getLogger(progname or "alfsoap"))
    except ConfigurationException as ex:
        raise Failure(str(ex)) from ex

    try:
        asyncio.run(browse(cli, opts.noderef, opts.root))
    except MalformedReference as ex:
        raise Failure(str(ex), 2) from ex
    except AlfrescoException as ex:
        raise Failure("Failed to browse repository: "+str(ex), 4) from ex
