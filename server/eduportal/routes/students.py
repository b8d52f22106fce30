from fastapi import APIRouter, HTTPException
import hashlib

from eduportal.models import Student
from eduportal.schemas import FaceRegisterRequest, ProgressUpdate, StudentCreate
from eduportal.storage import students_db

router = APIRouter(tags=["Students"])


def get_student_or_404(student_id: str) -> Student:
    student = students_db.get(student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


@router.post("", response_model=Student, status_code=201)
async def register_student(request: StudentCreate):
    """
    Register a student. Without an explicit id, the id is derived from the
    name, so the same name always maps to the same student.
    """
    student_id = request.id
    if not student_id:
        name_normalized = request.name.strip().lower()
        student_id = hashlib.md5(name_normalized.encode()).hexdigest()[:8]

    if student_id not in students_db:
        students_db[student_id] = Student(id=student_id, name=request.name)
        print(f"✅ Registered student {request.name} ({student_id})")

    return students_db[student_id]


@router.get("/{student_id}", response_model=Student)
async def get_student(student_id: str):
    return get_student_or_404(student_id)


@router.put("/{student_id}/progress", response_model=Student)
async def update_progress(student_id: str, request: ProgressUpdate):
    student = get_student_or_404(student_id)
    students_db[student_id] = student.model_copy(update={"progress": request.progress})
    return students_db[student_id]


@router.put("/{student_id}/face")
async def register_face(student_id: str, request: FaceRegisterRequest):
    """Store the trusted face image used by face verification."""
    student = get_student_or_404(student_id)
    students_db[student_id] = student.model_copy(update={"registered_face": request.image_base64})
    return {"success": True}
