from eduplan.core.config import Settings, get_settings
from eduplan.services.generation_jobs import GenerationJobStore, get_job_store


def get_app_settings() -> Settings:
    return get_settings()


def get_generation_jobs() -> GenerationJobStore:
    return get_job_store()
