from .member_repository import MemberRepository
from .form_token_repository import FormTokenRepository

__all__ = ['MemberRepository', 'FormTokenRepository']
