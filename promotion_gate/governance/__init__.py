from .audit import AuditLogger
from .condition import ApprovalDenied, ManualCondition
from .parameters import InvalidParameterError
from .processes import ProcessStore, PromotionProcess, UnknownProcessError
from .records import BuildRecordStore
from .scheduler import PromotionQueue

__all__ = [
    'AuditLogger',
    'ApprovalDenied',
    'BuildRecordStore',
    'InvalidParameterError',
    'ManualCondition',
    'ProcessStore',
    'PromotionProcess',
    'PromotionQueue',
    'UnknownProcessError',
]
