# bots/management/commands/run_simulator.py
import asyncio

from django.core.management.base import BaseCommand

from bots.services.runtime import build_runtime, install_runtime


class Command(BaseCommand):
    help = 'Run the bot simulator against the live (or simulated) price feed'

    def add_arguments(self, parser):
        parser.add_argument('--simulated', action='store_true',
                            help='Use the random-walk price feed instead of Binance')
        parser.add_argument('--seed', type=int, default=None,
                            help='Seed for the simulation random source')

    def handle(self, *args, **options):
        runtime = build_runtime(simulated=options['simulated'] or None, seed=options['seed'])
        install_runtime(runtime)

        feed = 'simulated' if options['simulated'] else 'Binance'
        self.stdout.write(f'Starting simulator ({feed} feed), Ctrl+C to stop...')
        try:
            asyncio.run(runtime.serve_forever())
        except KeyboardInterrupt:
            pass

        self.stdout.write(self.style.SUCCESS('Simulator stopped, bot configs saved'))
