from vendorhub.models.vendor import Vendor, Profile  # noqa: F401
from vendorhub.models.contract import Contract, Document  # noqa: F401
from vendorhub.models.activity_log import ActivityLog  # noqa: F401
