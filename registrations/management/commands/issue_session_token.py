from django.core.management.base import BaseCommand, CommandError

from registrations.tokens import ROLES, issue_session_token


class Command(BaseCommand):
    help = "Print a signed session token for an operator or student"

    def add_arguments(self, parser):
        parser.add_argument("--subject", required=True)
        parser.add_argument("--role", choices=ROLES, default="admin")
        parser.add_argument("--minutes", type=int, default=None)

    def handle(self, *args, **opts):
        if opts["minutes"] is not None and opts["minutes"] <= 0:
            raise CommandError("--minutes must be positive")
        token = issue_session_token(opts["subject"], opts["role"], minutes=opts["minutes"])
        self.stdout.write(token)
