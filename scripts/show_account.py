from __future__ import annotations

import argparse
import json

from rmbg.config import Settings
from rmbg.infrastructure.remove_bg_client import RemoveBgApiRemover


def main() -> None:
    parser = argparse.ArgumentParser(description="Show remove.bg credit balance for REMOVE_BG_API_KEY")
    parser.add_argument('--json', action='store_true', help='print the raw account attributes')
    args = parser.parse_args()

    attributes = RemoveBgApiRemover(Settings()).account()
    if args.json:
        print(json.dumps(attributes, indent=2))
        return

    credits = attributes.get('credits', {})
    api = attributes.get('api', {})
    print({
        'credits_total': credits.get('total'),
        'credits_subscription': credits.get('subscription'),
        'credits_payg': credits.get('payg'),
        'free_calls': api.get('free_calls'),
    })


if __name__ == '__main__':
    main()
