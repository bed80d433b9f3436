from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status

from exceptions import get_forbidden_exception
from models.leave_requests import LeaveStatus
from schemas.leave import LeaveResponse, LeaveUpdate, StatusUpdate, serialize_leave
from utils.app_utils import get_current_user, get_current_admin
from utils.image_utils import read_upload
from utils.leave_utils import LeaveManager, get_leave_manager

router = APIRouter()


async def leave_response(manager: LeaveManager, leave: dict) -> dict:
    users = await manager.load_users([leave])
    return serialize_leave(leave, users.get(leave["user_id"]), users.get(leave.get("approver_id")))


def ensure_can_view(user_and_type: tuple, leave: dict):
    user, user_type = user_and_type
    if user_type != "admin" and leave["user_id"] != user["_id"]:
        raise get_forbidden_exception()


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=LeaveResponse)
async def create_leave_request(
    leave_type: Optional[str] = Form(None),
    dates: List[str] = Form([]),
    reason: Optional[str] = Form(""),
    half_day_type: Optional[str] = Form(None),
    other_reason: Optional[str] = Form(None),
    user: Optional[str] = Form(None, description="Owner id; defaults to the caller"),
    proof_document: Optional[UploadFile] = File(None),
    user_and_type: tuple = Depends(get_current_user),
    manager: LeaveManager = Depends(get_leave_manager),
):
    """
    Submit a leave request.
    The optional proof document is encrypted before it is stored. The reviewing
    admin is notified in the background; a failed notification never fails the
    submission.
    Raises:
        HTTPException:
            - 400: If leave type or dates are missing or invalid
            - 403: If a non-admin submits on behalf of someone else
            - 404: If the owner does not exist
    """
    current_user, user_type = user_and_type
    owner_id = user or str(current_user["_id"])
    if user_type != "admin" and owner_id != str(current_user["_id"]):
        raise get_forbidden_exception()

    proof, proof_mime_type = None, None
    if proof_document is not None and proof_document.filename:
        proof, proof_mime_type = await read_upload(proof_document)

    leave = await manager.submit(
        user_id=owner_id,
        leave_type=leave_type,
        dates=dates,
        reason=reason,
        half_day_type=half_day_type,
        other_reason=other_reason,
        proof=proof,
        proof_mime_type=proof_mime_type,
    )
    return await leave_response(manager, leave)


@router.get("/", response_model=List[LeaveResponse])
async def list_leave_requests(
    leave_status: Optional[LeaveStatus] = Query(None, alias="status", description="Pending, Approved or Rejected"),
    user: Optional[str] = Query(None, description="Only requests owned by this user"),
    user_and_type: tuple = Depends(get_current_user),
    manager: LeaveManager = Depends(get_leave_manager),
):
    """Admins see every request; employees only their own."""
    current_user, user_type = user_and_type
    if user_type != "admin":
        user = str(current_user["_id"])

    leaves = await manager.list_leaves(status=leave_status.value if leave_status else None, user_id=user)
    users = await manager.load_users(leaves)
    return [serialize_leave(leave, users.get(leave["user_id"]), users.get(leave.get("approver_id")))
            for leave in leaves]


@router.get("/{leave_id}", response_model=LeaveResponse)
async def get_leave_request(
    leave_id: str,
    user_and_type: tuple = Depends(get_current_user),
    manager: LeaveManager = Depends(get_leave_manager),
):
    leave = await manager.get_leave(leave_id)
    ensure_can_view(user_and_type, leave)
    return await leave_response(manager, leave)


@router.get("/{leave_id}/proof")
async def get_proof_document(
    leave_id: str,
    user_and_type: tuple = Depends(get_current_user),
    manager: LeaveManager = Depends(get_leave_manager),
):
    ensure_can_view(user_and_type, await manager.get_leave(leave_id))
    content, mime_type = await manager.read_proof(leave_id)
    return Response(content=content, media_type=mime_type)


@router.delete("/{leave_id}")
async def delete_leave_request(
    leave_id: str,
    user_and_type: tuple = Depends(get_current_user),
    manager: LeaveManager = Depends(get_leave_manager),
):
    ensure_can_view(user_and_type, await manager.get_leave(leave_id))
    await manager.delete(leave_id)
    return {"message": "Leave request deleted"}


@router.put("/{leave_id}", response_model=LeaveResponse)
async def update_leave_request(
    leave_id: str,
    changes: LeaveUpdate,
    user_and_type: tuple = Depends(get_current_user),
    manager: LeaveManager = Depends(get_leave_manager),
):
    """
    Edit a request. Setting ``status`` approves or rejects it, which only
    admins may do; the approver defaults to the calling admin.
    """
    current_user, user_type = user_and_type
    ensure_can_view(user_and_type, await manager.get_leave(leave_id))
    if changes.status is not None and user_type != "admin":
        raise get_forbidden_exception()

    leave = await manager.update(
        leave_id,
        changes.model_dump(exclude={"status", "approver_id"}, exclude_none=True),
        status=changes.status,
        approver_id=changes.approver_id or current_user["_id"],
    )
    return await leave_response(manager, leave)


@router.put("/{leave_id}/status", response_model=LeaveResponse)
async def update_leave_status(
    leave_id: str,
    status_update: StatusUpdate,
    admin: dict = Depends(get_current_admin),
    manager: LeaveManager = Depends(get_leave_manager),
):
    """
    Approve or reject a pending request.
    Approval deducts the leave from the owner's balance; the owner is
    notified either way.
    Raises:
        HTTPException:
            - 403: If the caller is not an admin
            - 404: If the leave request does not exist
            - 409: If the request is no longer pending
    """
    leave = await manager.transition(
        leave_id,
        status_update.status,
        approver_id=status_update.approver_id or admin["_id"],
    )
    return await leave_response(manager, leave)
