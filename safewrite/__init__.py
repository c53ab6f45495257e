from . import client
from . import collection
from . import config
from . import cursor
from . import database
from . import document
from . import errors
from . import results
from . import safety
from . import write_concern

SafewriteClient = client.SafewriteClient
Config = config.Config
configure = config.configure
get_config = config.get_config
Document = document.Document
Safety = safety.Safety
SafetyProxy = safety.SafetyProxy
merge_safety_options = safety.merge_safety_options
resolve_write_concern = safety.resolve_write_concern
safety_override = safety.safety_override
WriteConcern = write_concern.WriteConcern

ASCENDING = collection.ASCENDING
DESCENDING = collection.DESCENDING

VERSION = "0.1.0"
