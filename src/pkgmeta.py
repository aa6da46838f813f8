"""pkgmeta - canonical package metadata for npm packages and git repositories.

    Returns:
        int: Exit code
"""
import asyncio
import json
import logging
import sys

from constants import Constants, ExitCodes, _load_yaml_config, apply_config
from errors import PackageMetadataError, UpstreamUnavailable
from common.http_client import HttpClient
from common.logging_utils import configure_logging, is_debug_enabled
from licensing.detector import LicenseDetector
from registry.resolver import PackageResolver
from repository.providers import github_org_repo
from args import parse_args

logger = logging.getLogger(__name__)


async def _versions(resolver, args):
    if args.BRANCH:
        versions = await resolver.versions_on_branch(args.REFERENCE, args.BRANCH)
    else:
        versions = await resolver.versions(args.REFERENCE)
    for version in versions:
        print(version)


async def _info(resolver, args):
    metadata = await resolver.info(args.REFERENCE, args.VERSION, args.SOURCE_URI)
    print(json.dumps(metadata.to_dict(), indent=2))


async def _archive(resolver, args):
    stream = await resolver.archive(args.REFERENCE, args.VERSION)
    async with stream:
        with open(args.OUTPUT, "wb") as out:
            async for chunk in stream:
                out.write(chunk)
    logger.info("Wrote %s", args.OUTPUT)


async def _license(http, args):
    detector = LicenseDetector(http)
    if args.LICENSE_FILE:
        with open(args.LICENSE_FILE, encoding="utf-8") as fh:
            contents = fh.read()
        print(await detector.classify(contents))
    else:
        org_repo = github_org_repo(args.ORG_REPO) or args.ORG_REPO
        print(await detector.detect_from_host(org_repo))


async def run(args) -> int:
    """Run one subcommand and return its exit code."""
    async with HttpClient() as http:
        resolver = PackageResolver.create(http)
        try:
            if args.COMMAND == "versions":
                await _versions(resolver, args)
            elif args.COMMAND == "info":
                await _info(resolver, args)
            elif args.COMMAND == "archive":
                await _archive(resolver, args)
            elif args.COMMAND == "license":
                await _license(http, args)
        except UpstreamUnavailable as exc:
            logger.error("%s", exc)
            if exc.status == 0:
                return ExitCodes.CONNECTION_ERROR.value
            return ExitCodes.LOOKUP_ERROR.value
        except PackageMetadataError as exc:
            logger.error("%s", exc)
            return ExitCodes.LOOKUP_ERROR.value
        except OSError as exc:
            logger.error("File error: %s", exc)
            return ExitCodes.FILE_ERROR.value
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL)
    apply_config(_load_yaml_config(args.CONFIG))
    if is_debug_enabled(logger):
        logger.debug("Registry: %s, GitHub API: %s", Constants.REGISTRY_URL_NPM, Constants.GITHUB_API_BASE)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
