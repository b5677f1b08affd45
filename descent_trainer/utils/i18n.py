import gettext
import logging
from gettext import gettext as _
from pathlib import Path

logger = logging.getLogger(__name__)

DOMAIN = "descent_trainer"

locale_dir = Path(__file__).parent.parent / "i18n"


gettext.bindtextdomain(
    DOMAIN,
    localedir=str(locale_dir),
)
# module-level _ aliases resolve against the default domain
gettext.textdomain(DOMAIN)

logger.debug(
    _('Loading locale data from "{locale_folder}"').format(
        locale_folder=locale_dir
    )
)
