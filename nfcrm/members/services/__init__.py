from .invite_service import InviteService, InviteDeliveryError

__all__ = ['InviteService', 'InviteDeliveryError']
