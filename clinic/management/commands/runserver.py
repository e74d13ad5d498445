from django.conf import settings
from django.contrib.staticfiles.management.commands.runserver import Command as StaticRunserverCommand


class Command(StaticRunserverCommand):
    """``runserver`` that listens on ``settings.PORT`` when no address is given."""
    default_port = str(settings.PORT)
