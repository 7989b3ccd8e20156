from django.core.management.base import BaseCommand

from reports.services.metrics import reset_metrics


class Command(BaseCommand):
    help = "Remet à zéro les compteurs Redis d'édition des bulletins (en attente, prêts, en échec, durées)."

    def handle(self, *args, **options):
        reset_metrics()
        self.stdout.write(self.style.SUCCESS("Compteurs de bulletins réinitialisés."))
