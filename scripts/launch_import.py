"""Run the launch member import from the command line.

Usage:
    python scripts/launch_import.py --onboarding onboarding.csv            # dry run
    python scripts/launch_import.py --onboarding onboarding.xlsx --live    # real import

Ctrl+C pauses the run after the record in progress; the summary is printed
either way. Re-running with the same roster skips members already created.
"""

import os
import sys
import argparse

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'nfcrm'))

from core.utils.logging_config import setup_logging  # noqa: E402
from launch.config import ImportConfig  # noqa: E402
from launch.parsers import load_onboarding_file  # noqa: E402
from launch.services import ImportEngine, MemberSourceFetcher  # noqa: E402

POLL_SECONDS = 5


def main():
    parser = argparse.ArgumentParser(description='Import LearningSuite members into the CRM')
    parser.add_argument('--onboarding', required=True, help='Onboarding export (.csv/.tsv/.xlsx)')
    parser.add_argument('--course-id', help='LearningSuite course id (default: LAUNCH_COURSE_ID)')
    parser.add_argument('--cooldown-ms', type=int, help='Delay between members in ms')
    parser.add_argument('--live', action='store_true', help='Create members and send invites')
    args = parser.parse_args()

    logger = setup_logging(level=os.environ.get('LOG_LEVEL', 'INFO'))

    defaults = ImportConfig.from_env()
    config = ImportConfig(
        cooldown_ms=defaults.cooldown_ms if args.cooldown_ms is None else args.cooldown_ms,
        is_dry_run=not args.live,
        course_id=args.course_id or defaults.course_id,
    )

    parsed = load_onboarding_file(args.onboarding)
    logger.info(f'Onboarding file: {parsed.valid_rows}/{parsed.total_rows} valid rows')
    for err in parsed.errors[:10]:
        logger.warning(err)

    fetched = MemberSourceFetcher().fetch(config.course_id)
    if not fetched.success:
        logger.error(f'Could not fetch roster: {fetched.error}')
        sys.exit(1)

    engine = ImportEngine()
    engine.start(fetched.members, parsed.index, config)
    try:
        while not engine.join(timeout=POLL_SECONDS):
            s = engine.get_status()
            logger.info(f'{s.processed}/{s.total} processed, ~{s.estimated_remaining_minutes} min left')
    except KeyboardInterrupt:
        logger.warning('Pausing after the current member...')
        engine.pause()
        engine.join()

    s = engine.get_status()
    print(f'Phase: {s.phase.value}')
    print(f'Processed: {s.processed}/{s.total}  skipped={s.skipped}  '
          f'with_onboarding={s.with_onboarding}  without_onboarding={s.without_onboarding}  errors={s.errors}')
    sys.exit(0 if s.phase.value == 'completed' and not s.errors else 2)


if __name__ == '__main__':
    main()
