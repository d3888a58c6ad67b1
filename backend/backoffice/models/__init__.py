from backoffice.models.approval_request import CampaignApprovalRequest
from backoffice.models.campaign import Campaign, CampaignCustomerGroup, CampaignOffer, CampaignScript, CampaignStatus
from backoffice.models.campaign_history import CampaignHistory
from backoffice.models.channel import Channel
from backoffice.models.customer_group import CustomerGroup
from backoffice.models.notice import Notice
from backoffice.models.offer import Offer
from backoffice.models.password_reset import PasswordResetRequest
from backoffice.models.script import Script
from backoffice.models.system_log import SystemLog
from backoffice.models.user import User
from backoffice.models.user_session import UserSession

__all__ = [
    "Campaign",
    "CampaignApprovalRequest",
    "CampaignCustomerGroup",
    "CampaignHistory",
    "CampaignOffer",
    "CampaignScript",
    "CampaignStatus",
    "Channel",
    "CustomerGroup",
    "Notice",
    "Offer",
    "PasswordResetRequest",
    "Script",
    "SystemLog",
    "User",
    "UserSession",
]
