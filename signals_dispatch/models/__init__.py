from signals_dispatch.models.consent_record import ConsentRecord
from signals_dispatch.models.dispatch_log import DispatchLog
from signals_dispatch.models.dispatch_mapping import DispatchMapping
