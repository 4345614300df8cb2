from fastapi import APIRouter, Depends, HTTPException, status

from portal_chat.models.conversation import ParticipantDocument
from portal_chat.schemas.notification import NewInstallerIn, PaymentCommentIn, PaymentRequestIn, SerialSubmissionIn
from portal_chat.services.notification_service import NotificationService
from portal_chat.utils.dependencies import get_current_viewer, get_notification_service


router = APIRouter(prefix="/notifications", tags=["notifications"])


def _admin_viewer(viewer: ParticipantDocument = Depends(get_current_viewer)) -> ParticipantDocument:
    if viewer["type"] != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only.")
    return viewer


@router.get("", dependencies=[Depends(_admin_viewer)])
async def list_notifications(service: NotificationService = Depends(get_notification_service)):
    return {"items": service.list(), "unread": service.unread_count()}


@router.get("/unread_count", dependencies=[Depends(_admin_viewer)])
async def unread_count(service: NotificationService = Depends(get_notification_service)):
    return {"unread": service.unread_count()}


@router.post("/read_all", dependencies=[Depends(_admin_viewer)])
async def mark_all_read(service: NotificationService = Depends(get_notification_service)):
    updated = await service.mark_all_as_read()
    return {"updated": updated}


@router.post("/{notification_id}/read", dependencies=[Depends(_admin_viewer)])
async def mark_read(notification_id: str, service: NotificationService = Depends(get_notification_service)):
    if not await service.mark_as_read(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found.")
    return {"read": True}


# hooks for the payment, serial and registration modules of the portal

@router.post("/payment_request", status_code=status.HTTP_201_CREATED)
async def payment_request(body: PaymentRequestIn, service: NotificationService = Depends(get_notification_service)):
    notification = await service.on_payment_request(body.payment_id, body.amount, body.installer_name)
    return {"notification": notification}


@router.post("/payment_comment")
async def payment_comment(body: PaymentCommentIn, service: NotificationService = Depends(get_notification_service)):
    notification = await service.on_payment_comment(body.payment_id, body.user_name, body.user_type, body.comment)
    return {"notification": notification}


@router.post("/serial_submission", status_code=status.HTTP_201_CREATED)
async def serial_submission(body: SerialSubmissionIn, service: NotificationService = Depends(get_notification_service)):
    notification = await service.on_serial_submission(body.serial_number, body.installer_name, body.inverter_model)
    return {"notification": notification}


@router.post("/new_installer", status_code=status.HTTP_201_CREATED)
async def new_installer(body: NewInstallerIn, service: NotificationService = Depends(get_notification_service)):
    notification = await service.on_new_installer(body.installer_id, body.installer_name, body.city)
    return {"notification": notification}
