from django.conf import settings
from django.core.management.base import BaseCommand

from services.matching import ExpiryScanner, cancel_expired_requests, run_sweep


class Command(BaseCommand):
    help = "Release expired claims and re-match their requests, once or on a loop."

    def add_arguments(self, parser):
        parser.add_argument(
            "--loop",
            action="store_true",
            help="Keep sweeping until interrupted instead of running once.",
        )
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds between sweeps with --loop (default: CLAIM_SWEEP_INTERVAL_SECONDS).",
        )
        parser.add_argument(
            "--expire-requests",
            action="store_true",
            help="Also cancel requests past their absolute expiry.",
        )

    def handle(self, *args, **options):
        if options["loop"]:
            interval = options["interval"] or getattr(settings, "CLAIM_SWEEP_INTERVAL_SECONDS", 10)
            self.stdout.write(f"Sweeping expired claims every {interval}s (Ctrl+C to stop)")
            if options["expire_requests"]:
                self.stdout.write("Requests past their expiry are cancelled on every pass")

            scanner = ExpiryScanner(interval, expire_requests=options["expire_requests"])
            scanner.start()
            try:
                scanner.join()
            except KeyboardInterrupt:
                scanner.stop()
            return

        result = run_sweep()
        self.stdout.write(
            self.style.SUCCESS(
                f"Expired {result.expired} claim(s); reassigned {result.reassigned}; failed {result.failed}."
            )
        )

        if options["expire_requests"]:
            cancelled = cancel_expired_requests()
            self.stdout.write(self.style.SUCCESS(f"Cancelled {cancelled} expired request(s)."))
