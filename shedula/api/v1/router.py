from fastapi import APIRouter
from shedula.api.v1.endpoints import doctors, appointments, doctor_console, patients

api_router = APIRouter()
api_router.include_router(doctors.router, prefix="/doctors", tags=["doctors"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(doctor_console.router, prefix="/doctor-console", tags=["doctor-console"])
api_router.include_router(patients.router, prefix="/patients", tags=["patients"])
