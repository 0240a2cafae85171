"""Remote bug tracker (FogBugz XML API) client"""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from incident_sync.services.entities import Case, Milestone
from incident_sync.services.retry import with_retries

logger = logging.getLogger(__name__)

# The API version this client was written against
API_VERSION = 5

SEARCH_COLUMNS = (
    "ixBug,fOpen,sTitle,sLatestTextSummary,ixProject,ixArea,ixPersonOpenedBy,"
    "ixPersonAssignedTo,ixStatus,ixPriority,ixFixFor,sVersion,sComputer,hrsCurrEst,"
    "ixCategory,dtClosed,dtDue,dtLastUpdated"
)

_PARAM_DATE_FORMAT = "%Y%m%dT%H:%M:%S"
_SEARCH_DATE_FORMAT = "%m/%d/%Y"


class FogBugzApiError(RuntimeError):
    """Error reported by the remote API"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _int_value(element: ET.Element, name: str) -> Optional[int]:
    """Integer child value; None when missing or not numeric (the API's -1)."""
    text = element.findtext(name)
    if text is None:
        return None
    try:
        value = int(text.strip())
    except ValueError:
        return None
    return None if value == -1 else value


def _hours_value(element: ET.Element, name: str) -> Optional[int]:
    """Whole hours; the API reports estimates as decimals and -1 when unset."""
    text = (element.findtext(name) or "").strip()
    try:
        value = int(float(text))
    except ValueError:
        return None
    return None if value == -1 else value


def _date_value(element: ET.Element, name: str) -> Optional[datetime]:
    text = (element.findtext(name) or "").strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


def _text_value(element: ET.Element, name: str) -> str:
    return element.findtext(name) or ""


def encode_parameters(parameters: Dict[str, Any]) -> Dict[str, str]:
    """Drop empty values (None, "", -1) and format the rest the way the API expects."""
    encoded: Dict[str, str] = {}
    for key, value in parameters.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "1" if value else "0"
        elif isinstance(value, int):
            if value == -1:
                continue
            encoded[key] = str(value)
        elif isinstance(value, datetime):
            encoded[key] = value.strftime(_PARAM_DATE_FORMAT)
        else:
            text = str(value)
            if text == "":
                continue
            encoded[key] = text
    return encoded


class FogBugzClient:
    """Wrapper for the remote tracker's XML API"""

    def __init__(
        self,
        url: str,
        *,
        enable_keep_alives: bool = True,
        verify_certificate: bool = True,
        timeout: float = 1200,
        trace_logging: bool = False,
    ):
        self.url = (url or "").rstrip("/")
        self.api_url_suffix = ""
        self.token = ""
        self.timeout = timeout
        self.trace_logging = trace_logging
        self.session = requests.Session()
        self.session.verify = verify_certificate
        if not enable_keep_alives:
            self.session.headers["Connection"] = "close"

    def call_method(self, command: str, parameters: Optional[Dict[str, Any]] = None) -> ET.Element:
        """Call an API command and return the <response> element."""
        if command == "verifyapi":
            # The real endpoint suffix isn't known until api.xml has been read
            url = self.url + "/api.xml"
            params: Dict[str, str] = {}
        else:
            url = self.url + "/" + self.api_url_suffix.rstrip("?")
            params = encode_parameters(dict(parameters or {}))
            params["cmd"] = command

        if self.trace_logging:
            logger.debug(f"Request - URL: {url} cmd={params.get('cmd', command)}")

        def _call():
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                raise FogBugzApiError(f"Unable to reach {url}: {e}") from e
            if not response.ok:
                raise FogBugzApiError(f"HTTP {response.status_code} from {command}", response.status_code)
            return response.content

        body = with_retries(_call)
        try:
            root = ET.fromstring(body)
        except ET.ParseError as e:
            raise FogBugzApiError(f"Unable to load in the method response XML: {body[:200]!r}") from e

        response_el = root if root.tag == "response" else root.find(".//response")
        if response_el is None:
            raise FogBugzApiError("Unable to get response element")

        error_el = response_el.find(".//error")
        if error_el is not None:
            code = error_el.get("code", "(unknown)")
            raise FogBugzApiError(f"Error code {code} returned from FogBugz API: {error_el.text or ''}")
        return response_el

    def _require_token(self):
        if not self.token:
            raise FogBugzApiError("You need to logon to the API before calling this method")

    def verify_api(self) -> bool:
        """Check the API is compatible and remember its endpoint suffix."""
        response = self.call_method("verifyapi")
        version = int(response.findtext("version", "0"))
        min_version = int(response.findtext("minversion", "0"))
        if version >= API_VERSION and min_version <= API_VERSION:
            self.api_url_suffix = response.findtext("url", "")
            return True
        logger.warning(f"FogBugz API version {version} (min {min_version}) is not supported")
        return False

    def logon(self, email: str, password: str) -> None:
        """Log on and keep the session token. Raises on failure."""
        response = self.call_method("logon", {"email": email, "password": password})
        token = response.findtext("token")
        if not token:
            raise FogBugzApiError("Logon did not return a session token")
        self.token = token.strip()

    def logoff(self) -> None:
        if not self.token:
            return
        self.call_method("logoff", {"token": self.token})
        self.token = ""

    def search(self, query: str) -> List[Case]:
        self._require_token()
        response = self.call_method("search", {"token": self.token, "q": query, "cols": SEARCH_COLUMNS})
        cases = []
        for el in response.iter("case"):
            cases.append(
                Case(
                    case_id=int(el.get("ixBug")),
                    title=_text_value(el, "sTitle"),
                    description=_text_value(el, "sLatestTextSummary"),
                    project=_int_value(el, "ixProject"),
                    area=_int_value(el, "ixArea"),
                    fix_for=_int_value(el, "ixFixFor"),
                    status=_int_value(el, "ixStatus"),
                    category=_int_value(el, "ixCategory"),
                    person_opened_by=_int_value(el, "ixPersonOpenedBy"),
                    person_assigned_to=_int_value(el, "ixPersonAssignedTo"),
                    priority=_int_value(el, "ixPriority"),
                    due=_date_value(el, "dtDue"),
                    hours_estimate=_hours_value(el, "hrsCurrEst"),
                    version=_text_value(el, "sVersion"),
                    computer=_text_value(el, "sComputer"),
                    closed=_date_value(el, "dtClosed"),
                    last_updated=_date_value(el, "dtLastUpdated"),
                )
            )
        return cases

    def get_case(self, case_id: int) -> Optional[Case]:
        cases = self.search(str(int(case_id)))
        return cases[0] if cases else None

    def get_changed_cases(self, project_id: int, since: datetime) -> List[Case]:
        """Cases of a project edited between `since` and today."""
        query = (
            f"project:={int(project_id)} "
            f'edited:"{since.strftime(_SEARCH_DATE_FORMAT)}..{datetime.now().strftime(_SEARCH_DATE_FORMAT)}"'
        )
        return self.search(query)

    def create_case(self, case: Case) -> Case:
        """Create a case; the returned case carries the new id."""
        self._require_token()
        response = self.call_method(
            "new",
            {
                "token": self.token,
                "sTitle": case.title,
                "ixProject": case.project,
                "ixArea": case.area,
                "ixFixFor": case.fix_for,
                "ixCategory": case.category,
                "ixStatus": case.status,
                "ixPersonAssignedTo": case.person_assigned_to,
                "ixPriority": case.priority,
                "dtDue": case.due,
                "hrsCurrEst": case.hours_estimate,
                "sVersion": case.version,
                "sComputer": case.computer,
                "sEvent": case.description,
            },
        )
        case_el = response.find("case")
        if case_el is None or case_el.get("ixBug") is None:
            raise FogBugzApiError("New case response did not contain a case id")
        case.case_id = int(case_el.get("ixBug"))
        logger.info(f"Created case {case.case_id} in FogBugz project {case.project}")
        return case

    def get_milestone(self, milestone_id: int) -> Optional[Milestone]:
        self._require_token()
        response = self.call_method("viewFixFor", {"token": self.token, "ixFixFor": int(milestone_id)})
        el = response.find("fixfor")
        if el is None:
            return None
        return Milestone(
            milestone_id=_int_value(el, "ixFixFor"),
            project=_int_value(el, "ixProject"),
            name=_text_value(el, "sFixFor"),
            release_date=_date_value(el, "dt"),
        )

    def create_milestone(self, milestone: Milestone) -> Milestone:
        self._require_token()
        response = self.call_method(
            "newFixFor",
            {
                "token": self.token,
                "ixProject": milestone.project,
                "sFixFor": milestone.name,
                "dtRelease": milestone.release_date,
                "fAssignable": milestone.assignable,
            },
        )
        el = response.find("fixFor")
        if el is None:
            el = response.find("fixfor")
        if el is None or el.get("ixFixFor") is None:
            raise FogBugzApiError("New FixFor response did not contain an id")
        milestone.milestone_id = int(el.get("ixFixFor"))
        logger.info(f"Created FixFor '{milestone.name}' in FogBugz project {milestone.project}")
        return milestone
