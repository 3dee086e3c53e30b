"""HTTP client for the evaluation backend."""

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..core.config import settings
from ..core.constants import EvaluationConstants
from ..core.models import Analysis, Category, Company, GeoMetrics, Project, Provider, QuestionResult

logger = logging.getLogger(__name__)

ASK_PATHS = {
    Provider.CHATGPT: "/ask-chatgpt",
    Provider.GEMINI: "/ask-gemini",
}


class ApiError(Exception):
    """A backend call was rejected or could not be made."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BackendClient:
    """Thin wrapper over the backend's JSON API."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or settings.api_root).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.session = session or requests.Session()
        self.headers = {"Content-Type": "application/json"}

    def _request(self, method: str, path: str, fallback: str, json_body: Optional[Dict[str, Any]] = None,
                 allow_not_found: bool = False) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                json=json_body,
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(fallback) from e

        if allow_not_found and response.status_code == 404:
            logger.info(f"{method} {path} returned 404")
            return None

        if not response.ok:
            detail = None
            try:
                body = response.json()
                if isinstance(body, dict):
                    detail = body.get("detail") or body.get("message")
            except ValueError:
                pass
            logger.error(f"{method} {path} failed: {response.status_code} - {detail or response.text[:200]}")
            raise ApiError(str(detail) if detail else fallback, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(fallback, status_code=response.status_code) from e

    # --- evaluation pipeline ---

    def analyze_website(self, domain: str, nation: str, state: str, query_context: str = "",
                        company_id: Optional[str] = None, project_id: Optional[str] = None) -> Tuple[Analysis, Optional[str]]:
        """Run the website analysis; returns the brand profile and the question-set id."""
        payload = {"domain": domain, "nation": nation, "state": state, "queryContext": query_context}
        if company_id:
            payload["company_id"] = company_id
        if project_id:
            payload["project_id"] = project_id

        data = self._request("POST", "/analyze", "Failed to analyze website", payload) or {}
        analysis_data = data.get("website_analysis") or data
        analysis = Analysis.from_dict(analysis_data)
        logger.info(f"Analyzed {domain}: brand '{analysis.brand_name}', niche '{analysis.niche}'")
        return analysis, data.get("prompt_questions_id")

    def generate_questions(self, analysis: Analysis, domain: str, nation: str, state: str,
                           prompt_questions_id: Optional[str] = None) -> List[QuestionResult]:
        """Ask the backend for the question list, in backend order."""
        payload = {
            "analysis": analysis.to_dict(),
            "domain": domain,
            "nation": nation,
            "state": state,
        }
        if prompt_questions_id:
            payload["prompt_questions_id"] = prompt_questions_id

        data = self._request("POST", "/generate-questions", "Failed to generate questions", payload) or []
        if isinstance(data, dict):
            data = data.get("questions") or []

        questions = []
        for idx, q in enumerate(data):
            questions.append(QuestionResult(
                id=str(q.get("id", idx)),
                category=q.get("category") or EvaluationConstants.DEFAULT_CATEGORY,
                category_id=q.get("category_id"),
                uuid=q.get("uuid"),
                question=q.get("text") or q.get("question") or "",
            ))
        logger.info(f"Generated {len(questions)} questions for {domain}")
        return questions

    def ask(self, question: str, nation: str, state: str, provider: Provider = Provider.CHATGPT,
            prompt_questions_id: Optional[str] = None, category_id: Optional[str] = None,
            uuid: Optional[str] = None) -> str:
        """Ask one assistant one question; returns the answer text."""
        payload = {"question": question, "nation": nation, "state": state}
        if prompt_questions_id:
            payload["prompt_questions_id"] = prompt_questions_id
        if category_id:
            payload["category_id"] = category_id
        if uuid:
            payload["uuid"] = uuid

        data = self._request("POST", ASK_PATHS[provider], "Failed to get answer", payload) or {}
        return data.get("answer") or ""

    # --- companies ---

    def get_companies(self) -> List[Company]:
        data = self._request("GET", "/companies", "Failed to fetch companies") or {}
        return [Company.from_dict(c) for c in data.get("companies", [])]

    def get_company(self, company_id: str) -> Company:
        data = self._request("GET", f"/companies/{company_id}", "Failed to fetch company")
        return Company.from_dict(data or {})

    def create_company(self, name: str, description: Optional[str] = None, website: Optional[str] = None) -> Company:
        if not (name or "").strip():
            raise ValueError("Company name is required")
        payload = {"name": name.strip()}
        if description:
            payload["description"] = description
        if website:
            payload["website"] = website
        data = self._request("POST", "/companies", "Failed to create company", payload)
        logger.info(f"Created company '{payload['name']}'")
        return Company.from_dict(data or payload)

    def delete_company(self, company_id: str) -> None:
        self._request("DELETE", f"/companies/{company_id}", "Failed to delete company")
        logger.info(f"Deleted company {company_id}")

    # --- projects ---

    def get_projects(self, company_id: str) -> List[Project]:
        data = self._request("GET", f"/companies/{company_id}/projects", "Failed to fetch projects") or {}
        return [Project.from_dict(p) for p in data.get("projects", [])]

    def get_project(self, project_id: str) -> Project:
        data = self._request("GET", f"/projects/{project_id}", "Failed to fetch project")
        return Project.from_dict(data or {})

    def create_project(self, company_id: str, name: str, description: Optional[str] = None,
                       domain: Optional[str] = None, nation: Optional[str] = None,
                       state: Optional[str] = None) -> Project:
        if not (name or "").strip():
            raise ValueError("Project name is required")
        payload = {"name": name.strip()}
        for key, value in (("description", description), ("domain", domain), ("nation", nation), ("state", state)):
            if value:
                payload[key] = value
        data = self._request("POST", f"/companies/{company_id}/projects", "Failed to create project", payload)
        logger.info(f"Created project '{payload['name']}' for company {company_id}")
        return Project.from_dict(data or dict(payload, company_id=company_id))

    def delete_project(self, project_id: str) -> None:
        self._request("DELETE", f"/projects/{project_id}", "Failed to delete project")
        logger.info(f"Deleted project {project_id}")

    # --- saved questions, categories, metrics ---

    def get_prompt_questions(self, project_id: str) -> Optional[Dict[str, Any]]:
        """Saved analysis and Q&A for a project, or None if nothing was saved yet."""
        return self._request(
            "GET", f"/projects/{project_id}/prompt-questions", "Failed to fetch prompt questions",
            allow_not_found=True,
        )

    def get_categories(self) -> List[Category]:
        data = self._request("GET", "/categories", "Failed to fetch categories") or []
        if isinstance(data, dict):
            data = data.get("categories") or []
        return [Category.from_dict(c) for c in data]

    def get_generated_metrics(self, prompt_question_id: str) -> Optional[GeoMetrics]:
        """Latest metrics snapshot for a question set, or None if none was computed."""
        data = self._request(
            "GET", f"/geo-metrics/{prompt_question_id}", "Failed to fetch metrics", allow_not_found=True,
        )
        if not GeoMetrics.is_snapshot(data):
            return None
        return GeoMetrics.from_dict(data)

    def calculate_metrics(self, prompt_question_id: str) -> GeoMetrics:
        """Compute a fresh metrics snapshot."""
        data = self._request(
            "POST", "/geo-metrics/calculate", "Failed to calculate metrics",
            {"prompt_question_id": prompt_question_id},
        )
        return GeoMetrics.from_dict(data or {})
