"""Argument parsing functionality for pkgmeta."""

import argparse


def build_parser():
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="pkgmeta",
        description=(
            "pkgmeta - Resolve canonical metadata, versions, archives and licenses "
            "for npm packages and git repositories"
        ),
        add_help=True,
    )

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)

    sub = parser.add_subparsers(dest="COMMAND", required=True)

    versions = sub.add_parser("versions", help="List available versions, newest first")
    versions.add_argument("REFERENCE", help="npm package name or git repository locator")
    versions.add_argument("-b", "--branch",
                          dest="BRANCH",
                          help="Only versions reachable on this branch (git repositories only)",
                          action="store",
                          type=str)

    info = sub.add_parser("info", help="Resolve canonical package metadata as JSON")
    info.add_argument("REFERENCE", help="npm package name or git repository locator")
    info.add_argument("-v", "--version",
                      dest="VERSION",
                      help="Version to resolve (defaults to latest)",
                      action="store",
                      type=str)
    info.add_argument("-s", "--source-uri",
                      dest="SOURCE_URI",
                      help="Override the source repository URI",
                      action="store",
                      type=str)

    archive = sub.add_parser("archive", help="Download the package contents as a tar file")
    archive.add_argument("REFERENCE", help="npm package name or git repository locator")
    archive.add_argument("VERSION", help="Version to download")
    archive.add_argument("-o", "--output",
                         dest="OUTPUT",
                         help="Path of the tar file to write",
                         action="store",
                         type=str,
                         required=True)

    lic = sub.add_parser("license", help="Detect a license")
    lic_input = lic.add_mutually_exclusive_group(required=True)
    lic_input.add_argument("-r", "--repo",
                           dest="ORG_REPO",
                           help="GitHub owner/repo (or repository URL) to look up",
                           action="store",
                           type=str)
    lic_input.add_argument("-f", "--file",
                           dest="LICENSE_FILE",
                           help="License file to classify",
                           action="store",
                           type=str)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
