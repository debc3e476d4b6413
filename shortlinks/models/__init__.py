from shortlinks.models.link_model import LinkModel
from shortlinks.models.visit_model import VisitModel, DailyVisitsModel


__all__ = [
    'LinkModel',
    'VisitModel',
    'DailyVisitsModel',
]
