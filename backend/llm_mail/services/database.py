"""
PostgreSQL Database Service
Saved email templates, look & feel presets and the singleton client profile
"""
import json
from contextlib import asynccontextmanager
from typing import Optional, Dict, Any, List

import asyncpg
import structlog

from llm_mail.config import Settings
from llm_mail.models.library import (
    ClientProfile,
    SaveLookAndFeelRequest,
    SaveTemplateRequest,
    UpdateTemplateRequest,
)

logger = structlog.get_logger(__name__)

DEFAULT_BRAND_COLOR = "#6366f1"
DEFAULT_ACCENT_COLOR = "#ec4899"
DEFAULT_FONT_FAMILY = "Arial, sans-serif"

PROFILE_JSON_FIELDS = (
    "corporate_identity",
    "tone_of_voice",
    "contact_info",
    "email_config",
    "content_guidelines",
    "compliance",
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS email_templates (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    user_prompt TEXT,
    subject TEXT,
    preheader TEXT,
    html_content TEXT NOT NULL,
    brand_color TEXT DEFAULT '#6366f1',
    accent_color TEXT DEFAULT '#ec4899',
    logo_url TEXT,
    font_family TEXT DEFAULT 'Arial, sans-serif',
    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS look_feel_templates (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    brand_color TEXT NOT NULL,
    accent_color TEXT NOT NULL,
    logo_url TEXT,
    font_family TEXT DEFAULT 'Arial, sans-serif',
    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS client_profile (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    website_url TEXT,
    full_scan_markdown TEXT,
    corporate_identity JSONB,
    tone_of_voice JSONB,
    contact_info JSONB,
    email_config JSONB,
    content_guidelines JSONB,
    compliance JSONB,
    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
);
"""


class DatabaseUnavailableError(RuntimeError):
    """Persistence was requested but no pool is available"""


class DatabaseService:
    """
    PostgreSQL database service using asyncpg for async operations
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.pool: Optional[asyncpg.Pool] = None
        self._is_initialized = False

    async def initialize(self) -> bool:
        """Create the pool and the tables; False when the database is unreachable"""
        try:
            logger.info("Initializing database connection pool",
                        host=self.settings.postgres_host,
                        database=self.settings.postgres_db)

            self.pool = await asyncpg.create_pool(
                dsn=self.settings.postgres_dsn,
                min_size=1,
                max_size=10,
                command_timeout=60,
            )

            async with self.pool.acquire() as conn:
                await conn.execute(SCHEMA)
                version = await conn.fetchval("SELECT version()")
                logger.info("Database connected", version=version[:50])

            self._is_initialized = True
            return True

        except (OSError, asyncpg.PostgresError) as e:
            logger.error("Failed to initialize database", error=str(e))
            if self.pool is not None:
                await self.pool.close()
                self.pool = None
            return False

    async def close(self):
        """Close the database connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self._is_initialized = False
            logger.info("Database connection pool closed")

    @asynccontextmanager
    async def connection(self):
        """Get a database connection from the pool"""
        if not self.pool:
            raise DatabaseUnavailableError("Database not initialized")
        async with self.pool.acquire() as conn:
            yield conn

    @property
    def is_healthy(self) -> bool:
        """Check if database is healthy"""
        return self._is_initialized and self.pool is not None

    # ============ Email Templates ============

    async def create_template(self, data: SaveTemplateRequest) -> int:
        look = data.lookAndFeel
        async with self.connection() as conn:
            template_id = await conn.fetchval(
                """
                INSERT INTO email_templates (
                    name, description, user_prompt, subject, preheader, html_content,
                    brand_color, accent_color, logo_url, font_family
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                RETURNING id
                """,
                data.name, data.description, data.userPrompt, data.subject, data.preheader, data.html,
                (look and look.brandColor) or DEFAULT_BRAND_COLOR,
                (look and look.accentColor) or DEFAULT_ACCENT_COLOR,
                look and look.logoUrl,
                (look and look.fontFamily) or DEFAULT_FONT_FAMILY,
            )
            logger.info("Saved email template", template_id=template_id, name=data.name)
            return template_id

    async def get_template(self, template_id: int) -> Optional[Dict[str, Any]]:
        async with self.connection() as conn:
            row = await conn.fetchrow("SELECT * FROM email_templates WHERE id = $1", template_id)
            return dict(row) if row else None

    async def list_templates(self, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        async with self.connection() as conn:
            rows = await conn.fetch(
                """
                SELECT id, name, description, subject, created_at, updated_at
                FROM email_templates
                ORDER BY created_at DESC
                LIMIT $1 OFFSET $2
                """,
                limit, offset
            )
            return [dict(row) for row in rows]

    async def update_template(self, template_id: int, data: UpdateTemplateRequest) -> bool:
        """Apply the non-null fields of ``data``; False when no such template exists"""
        look = data.lookAndFeel
        async with self.connection() as conn:
            status = await conn.execute(
                """
                UPDATE email_templates SET
                    name = COALESCE($2, name),
                    description = COALESCE($3, description),
                    subject = COALESCE($4, subject),
                    html_content = COALESCE($5, html_content),
                    brand_color = COALESCE($6, brand_color),
                    accent_color = COALESCE($7, accent_color),
                    logo_url = COALESCE($8, logo_url),
                    font_family = COALESCE($9, font_family),
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = $1
                """,
                template_id, data.name, data.description, data.subject, data.html,
                look and look.brandColor,
                look and look.accentColor,
                look and look.logoUrl,
                look and look.fontFamily,
            )
            return status.endswith(" 1")

    async def delete_template(self, template_id: int) -> bool:
        async with self.connection() as conn:
            status = await conn.execute("DELETE FROM email_templates WHERE id = $1", template_id)
            logger.info("Deleted email template", template_id=template_id)
            return status.endswith(" 1")

    # ============ Look & Feel ============

    async def create_look_and_feel(self, data: SaveLookAndFeelRequest) -> int:
        async with self.connection() as conn:
            return await conn.fetchval(
                """
                INSERT INTO look_feel_templates (name, brand_color, accent_color, logo_url, font_family)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING id
                """,
                data.name, data.brandColor, data.accentColor, data.logoUrl,
                data.fontFamily or DEFAULT_FONT_FAMILY,
            )

    async def list_look_and_feel(self) -> List[Dict[str, Any]]:
        async with self.connection() as conn:
            rows = await conn.fetch("SELECT * FROM look_feel_templates ORDER BY created_at DESC")
            return [dict(row) for row in rows]

    # ============ Client Profile ============

    async def get_client_profile(self) -> Optional[ClientProfile]:
        async with self.connection() as conn:
            row = await conn.fetchrow("SELECT * FROM client_profile WHERE id = 1")
        if not row:
            return None
        data = dict(row)
        for field in PROFILE_JSON_FIELDS:
            if isinstance(data.get(field), str):
                data[field] = json.loads(data[field])
        return ClientProfile(**data)

    async def upsert_client_profile(self, profile: ClientProfile) -> ClientProfile:
        """Merge ``profile`` into the stored row; empty fields keep their stored value"""
        values = [profile.website_url, profile.full_scan_markdown] + [
            json.dumps(getattr(profile, field)) if getattr(profile, field) else None
            for field in PROFILE_JSON_FIELDS
        ]
        async with self.connection() as conn:
            await conn.execute(
                """
                INSERT INTO client_profile (
                    id, website_url, full_scan_markdown, corporate_identity, tone_of_voice,
                    contact_info, email_config, content_guidelines, compliance
                ) VALUES (1, $1, $2, $3::jsonb, $4::jsonb, $5::jsonb, $6::jsonb, $7::jsonb, $8::jsonb)
                ON CONFLICT (id) DO UPDATE SET
                    website_url = COALESCE(EXCLUDED.website_url, client_profile.website_url),
                    full_scan_markdown = COALESCE(EXCLUDED.full_scan_markdown, client_profile.full_scan_markdown),
                    corporate_identity = COALESCE(EXCLUDED.corporate_identity, client_profile.corporate_identity),
                    tone_of_voice = COALESCE(EXCLUDED.tone_of_voice, client_profile.tone_of_voice),
                    contact_info = COALESCE(EXCLUDED.contact_info, client_profile.contact_info),
                    email_config = COALESCE(EXCLUDED.email_config, client_profile.email_config),
                    content_guidelines = COALESCE(EXCLUDED.content_guidelines, client_profile.content_guidelines),
                    compliance = COALESCE(EXCLUDED.compliance, client_profile.compliance),
                    updated_at = CURRENT_TIMESTAMP
                """,
                *values
            )
            logger.info("Client profile saved")
        return await self.get_client_profile()
