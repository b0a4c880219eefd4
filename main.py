# main.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from fastapi import Body, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from ai_filter import AIFilterError, build_gpt_agent
from backend import DataManager
from config import Settings, get_settings
from logger import setup_logging
from parsers import FileParseError

logger = logging.getLogger(__name__)

EntityType = Literal["clients", "workers", "tasks"]


class AIFilterRequest(BaseModel):
    query: str
    entity_type: EntityType = Field(alias="entityType")


def error_response(status_code: int, message: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


def get_data_manager(request: Request) -> DataManager:
    return request.app.state.data_manager


def create_app(settings: Optional[Settings] = None, data_manager: Optional[DataManager] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Data Alchemist")

    # Enable CORS for frontend communication
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.data_manager = data_manager or DataManager(gpt_agent=build_gpt_agent(settings))

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "data-alchemist",
        }

    # Upload one entity file (CSV or XLSX)
    @app.post("/upload")
    async def upload_file(
        file: UploadFile = File(...),
        entity_type: EntityType = Form(..., alias="entityType"),
        dm: DataManager = Depends(get_data_manager),
    ):
        content = await file.read()
        try:
            records = dm.load_file(entity_type, file.filename or "", content)
        except FileParseError as e:
            return error_response(400, str(e))
        return {
            "status": "success",
            "message": f"Loaded {len(records)} {entity_type} from {file.filename}",
            "count": len(records),
            "data": records,
        }

    @app.get("/data/{entity_type}")
    async def get_data(entity_type: EntityType, dm: DataManager = Depends(get_data_manager)):
        records = dm.filtered_entities(entity_type)
        return {
            "status": "success",
            "data": records,
            "total": len(dm.get_entities(entity_type)),
            "filtered": len(records),
            "filters": [f.model_dump() for f in dm.active_filters[entity_type]],
            "fileError": dm.file_errors[entity_type],
        }

    # Manual grid edit
    @app.patch("/data/{entity_type}/{instance_id}")
    async def update_entity(
        entity_type: EntityType,
        instance_id: str,
        updated_fields: Dict[str, Any] = Body(...),
        dm: DataManager = Depends(get_data_manager),
    ):
        try:
            record = dm.update_entity(entity_type, instance_id, updated_fields)
        except KeyError as e:
            return error_response(404, str(e.args[0]))
        except ValueError as e:
            return error_response(400, str(e))
        return {"status": "success", "data": record}

    @app.post("/validate")
    async def validate(dm: DataManager = Depends(get_data_manager)):
        dm.validate_all()
        return {
            "status": "success",
            "summary": dm.validation_summary,
            "data": {"clients": dm.clients, "workers": dm.workers, "tasks": dm.tasks},
        }

    # Natural language filter
    @app.post("/ai_filter")
    async def ai_filter(request: AIFilterRequest, dm: DataManager = Depends(get_data_manager)):
        try:
            filters = dm.ai_filter(request.query, request.entity_type)
        except AIFilterError as e:
            return error_response(502, str(e))
        return {
            "status": "success",
            "filters": [f.model_dump() for f in filters],
            "data": dm.filtered_entities(request.entity_type),
        }

    @app.delete("/filters/{entity_type}")
    async def clear_filters(entity_type: EntityType, dm: DataManager = Depends(get_data_manager)):
        dm.clear_filters(entity_type)
        return {"status": "success"}

    # Business rules
    @app.get("/rules")
    async def list_rules(dm: DataManager = Depends(get_data_manager)):
        return {"status": "success", "rules": dm.rules_as_dicts()}

    @app.post("/rules")
    async def add_rule(rule: Dict[str, Any] = Body(...), dm: DataManager = Depends(get_data_manager)):
        try:
            created = dm.add_rule(rule)
        except PydanticValidationError as e:
            return error_response(422, e.errors(include_url=False, include_context=False))
        except ValueError as e:
            return error_response(409, str(e))
        return {"status": "success", "rule": created.model_dump(by_alias=True)}

    @app.patch("/rules/{rule_id}")
    async def update_rule(
        rule_id: str,
        updated_fields: Dict[str, Any] = Body(...),
        dm: DataManager = Depends(get_data_manager),
    ):
        try:
            updated = dm.update_rule(rule_id, updated_fields)
        except KeyError as e:
            return error_response(404, str(e.args[0]))
        except PydanticValidationError as e:
            return error_response(422, e.errors(include_url=False, include_context=False))
        return {"status": "success", "rule": updated.model_dump(by_alias=True)}

    @app.delete("/rules/{rule_id}")
    async def delete_rule(rule_id: str, dm: DataManager = Depends(get_data_manager)):
        try:
            dm.delete_rule(rule_id)
        except KeyError as e:
            return error_response(404, str(e.args[0]))
        return {"status": "success"}

    # Prioritization weights
    @app.get("/prioritization")
    async def get_prioritization(dm: DataManager = Depends(get_data_manager)):
        return {"status": "success", "prioritization": dm.prioritization_weights}

    @app.put("/prioritization")
    async def set_prioritization(weights: Dict[str, Any] = Body(...), dm: DataManager = Depends(get_data_manager)):
        try:
            updated = dm.set_prioritization_weights(weights)
        except ValueError as e:
            return error_response(400, str(e))
        return {"status": "success", "prioritization": updated}

    @app.post("/prioritization/reset")
    async def reset_prioritization(dm: DataManager = Depends(get_data_manager)):
        return {"status": "success", "prioritization": dm.reset_prioritization_weights()}

    # Export and download data directly
    @app.post("/export_download")
    async def export_download(dm: DataManager = Depends(get_data_manager)):
        files_data = dm.export_files()
        return {
            "status": "success",
            "message": f"Prepared {len(files_data)} files for download",
            "files": files_data,
            "summary": dm.summary(),
        }

    # Export processed data to the configured folder
    @app.post("/export")
    async def export_data(request: Request, dm: DataManager = Depends(get_data_manager)):
        try:
            output_dir = dm.export_all(request.app.state.settings.export_dir)
        except OSError as e:
            logger.exception("Export failed")
            return error_response(500, str(e))
        return {
            "status": "success",
            "message": f"Data exported successfully to {output_dir}",
            "export_directory": output_dir,
            "summary": dm.summary(),
        }

    @app.post("/reset")
    async def reset(dm: DataManager = Depends(get_data_manager)):
        dm.reset()
        return {"status": "success"}

    return app


def build_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    return create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:build_app", factory=True, host="0.0.0.0", port=8000)
