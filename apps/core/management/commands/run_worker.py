from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from config.celery import app


class Command(BaseCommand):
    help = 'Starts a Celery worker consuming one CSA queue at its configured concurrency.'

    def add_arguments(self, parser):
        parser.add_argument('queue', help=f"One of: {', '.join(settings.CSA_QUEUES)}")
        parser.add_argument(
            '--concurrency',
            type=int,
            default=None,
            help='Override the configured concurrency',
        )
        parser.add_argument('--loglevel', default=settings.LOG_LEVEL)

    def handle(self, *args, **options):
        queue = options['queue']
        if queue not in settings.CSA_QUEUES:
            raise CommandError(f"Unknown queue: {queue}")

        concurrency = options['concurrency'] or settings.CSA_QUEUES[queue]
        self.stdout.write(f'Starting worker for {queue} (concurrency={concurrency})')

        app.worker_main(argv=[
            'worker',
            '--queues', queue,
            '--concurrency', str(concurrency),
            '--loglevel', options['loglevel'],
            '--hostname', f'{queue}@%h',
        ])
