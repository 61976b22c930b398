#!/usr/bin/env python3
"""Powerlevel CLI entrypoint."""

import sys
import argparse
import logging
from pathlib import Path

from powerlevel.lib.context import resolve_context
from powerlevel.lib.errors import ValidationError
from powerlevel.lib.github import check_gh_available
from powerlevel.tracking.cache import LockTimeout
from powerlevel.commands import sync as cmd_sync_module
from powerlevel.commands import journey as cmd_journey_module
from powerlevel.commands import skill as cmd_skill_module
from powerlevel.commands import commits as cmd_commits_module
from powerlevel.commands import reconcile as cmd_reconcile_module
from powerlevel.commands import status as cmd_status_module
from powerlevel.commands import epic as cmd_epic_module


def get_context(args):
    """Resolve repository context from --repo-path / --repo / --cache-dir."""
    repo_path = Path(args.repo_path).resolve() if args.repo_path else Path.cwd()
    cache_dir = Path(args.cache_dir) if args.cache_dir else None
    try:
        return resolve_context(repo_path, repo=args.repo, cache_dir=cache_dir)
    except ValidationError as e:
        print(f"ERROR: {e}")
        sys.exit(2)


def require_gh():
    """Exit with a usage error unless gh is installed and authenticated."""
    ok, error = check_gh_available()
    if not ok:
        print(f"ERROR: {error}")
        sys.exit(2)


def run_locked(handler, args, ctx) -> int:
    try:
        return handler(args, ctx)
    except LockTimeout as e:
        print(f"ERROR: {e}")
        return 1


def cmd_sync(args):
    ctx = get_context(args)
    require_gh()
    return run_locked(cmd_sync_module.cmd_sync, args, ctx)


def cmd_journey_add(args):
    ctx = get_context(args)
    return run_locked(cmd_journey_module.cmd_journey_add, args, ctx)


def cmd_journey_show(args):
    ctx = get_context(args)
    return cmd_journey_module.cmd_journey_show(args, ctx)


def cmd_skill(args):
    ctx = get_context(args)
    if args.sync:
        require_gh()
    return run_locked(cmd_skill_module.cmd_skill, args, ctx)


def cmd_commits(args):
    ctx = get_context(args)
    return run_locked(cmd_commits_module.cmd_commits, args, ctx)


def cmd_reconcile(args):
    ctx = get_context(args)
    require_gh()
    return run_locked(cmd_reconcile_module.cmd_reconcile, args, ctx)


def cmd_status(args):
    ctx = get_context(args)
    return cmd_status_module.cmd_status(args, ctx)


def cmd_labels(args):
    ctx = get_context(args)
    require_gh()
    return cmd_status_module.cmd_labels(args, ctx)


def cmd_epic_create(args):
    ctx = get_context(args)
    require_gh()
    return run_locked(cmd_epic_module.cmd_epic_create, args, ctx)


def cmd_track(args):
    ctx = get_context(args)
    require_gh()
    return run_locked(cmd_epic_module.cmd_track, args, ctx)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='powerlevel', description='Epic tracking for GitHub')
    parser.add_argument('--repo-path', '-C', help='Working copy (default: current directory)')
    parser.add_argument('--repo', '-r', help='GitHub repository as owner/repo (default: origin remote)')
    parser.add_argument('--cache-dir', help='Cache root (default: $POWERLEVEL_CACHE_DIR or ~/.cache/powerlevel)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # powerlevel sync
    p_sync = subparsers.add_parser('sync', help='Push dirty epics to GitHub')
    p_sync.add_argument('epic', nargs='?', type=int, help='Epic number (syncs all dirty epics if omitted)')
    p_sync.add_argument('--land', action='store_true',
                        help='Session checkpoint: scan commits for completions, then sync')
    p_sync.set_defaults(func=cmd_sync)

    # powerlevel journey
    p_journey = subparsers.add_parser('journey', help='Epic progress journey')
    journey_sub = p_journey.add_subparsers(dest='journey_command', required=True)

    # powerlevel journey add
    p_journey_add = journey_sub.add_parser('add', help='Add a journey entry')
    p_journey_add.add_argument('epic', type=int, help='Epic number')
    p_journey_add.add_argument('message', help='Entry message (task title with --task)')
    p_journey_add.add_argument('--event', '-e', default='note', help='Event type (default: note)')
    p_journey_add.add_argument('--agent', '-a', help='Who did the work')
    p_journey_add.add_argument('--task', '-t', type=int, help='Record completion of task N')
    p_journey_add.set_defaults(func=cmd_journey_add)

    # powerlevel journey show
    p_journey_show = journey_sub.add_parser('show', help='Show journey, newest first')
    p_journey_show.add_argument('epic', type=int, help='Epic number')
    p_journey_show.set_defaults(func=cmd_journey_show)

    # powerlevel skill
    p_skill = subparsers.add_parser('skill', help='Apply a skill announcement to its epic')
    p_skill.add_argument('message', nargs='?', help='Assistant message (read from stdin if omitted)')
    p_skill.add_argument('--agent', '-a', help='Agent that announced the skill')
    p_skill.add_argument('--sync', action='store_true', help='Push the updated epic immediately')
    p_skill.set_defaults(func=cmd_skill)

    # powerlevel commits
    p_commits = subparsers.add_parser('commits', help='Record task completions from commit messages')
    p_commits.add_argument('--since', help='Scan from this timestamp instead of the last check')
    p_commits.set_defaults(func=cmd_commits)

    # powerlevel reconcile
    p_reconcile = subparsers.add_parser('reconcile', help='Reconcile tracking epics with external repos')
    p_reconcile.add_argument('epic', nargs='?', type=int, help='Tracking epic (all if omitted)')
    p_reconcile.set_defaults(func=cmd_reconcile)

    # powerlevel status
    p_status = subparsers.add_parser('status', help='Show cached epics')
    p_status.set_defaults(func=cmd_status)

    # powerlevel labels
    p_labels = subparsers.add_parser('labels', help='Create missing tracking labels')
    p_labels.set_defaults(func=cmd_labels)

    # powerlevel epic
    p_epic = subparsers.add_parser('epic', help='Create epics')
    epic_sub = p_epic.add_subparsers(dest='epic_command', required=True)

    # powerlevel epic create
    p_epic_create = epic_sub.add_parser('create', help='Create an epic and task sub-issues from a plan')
    p_epic_create.add_argument('plan', help='Plan file, e.g. docs/plans/login.md')
    p_epic_create.add_argument('--force', action='store_true',
                               help='Create even if the plan already references an epic')
    p_epic_create.set_defaults(func=cmd_epic_create)

    # powerlevel track
    p_track = subparsers.add_parser('track', help='Create a tracking epic for an external repository')
    p_track.add_argument('external_repo', metavar='OWNER/REPO', help='Repository to track')
    p_track.add_argument('--name', help='Project label name (default: repository name)')
    p_track.add_argument('--description', help='Shown in the epic body')
    p_track.add_argument('--priority', choices=['p0', 'p1', 'p2', 'p3'], default='p2',
                         help='Epic priority (default: p2)')
    p_track.set_defaults(func=cmd_track)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
