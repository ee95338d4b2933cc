"""
Reload demo

Prints a greeting every second from scripts/greeter.py. Edit that file while
the demo runs: valid edits take effect on the next tick, broken edits are
reported and the previous greeter keeps answering.

Run:
    python examples/reload_demo.py
"""

import time
from pathlib import Path

from live_object import FileResolver, LiveObjectError, bind


def configure_greeter(instance):
    """Post-instantiation hook: configure each new greeter"""
    instance.name = 'live object'


def main():
    here = Path(__file__).parent
    greeter = bind(
        'scripts/greeter.py',
        resolver=FileResolver(base_dir=here),
    ).configure_hook(configure_greeter)

    while True:
        try:
            instance = greeter.get_instance()
        except LiveObjectError as e:
            print(f'[generation {greeter.generation}] reload failed: {e}')
            instance = None

        if instance is not None:
            print(f'[generation {greeter.generation}] {instance.greet()}')

        time.sleep(1)


if __name__ == '__main__':
    main()
