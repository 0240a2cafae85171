"""Incident <-> case synchronization service"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from incident_sync.config import Settings, settings as default_settings
from incident_sync.constants import (
    CLOSED_CASE_STATUS,
    CLOSED_USER_ID,
    DEFAULT_INCIDENT_NAME,
    FIRST_SYNC_DATE,
    INCIDENT_DETAILS_PATH,
    INCIDENT_PREFIX,
    RELEASE_VERSION_PREFIX,
    REMOTE_PRODUCT_NAME,
    STATUS_KEY_CLOSED,
    ArtifactField,
    ArtifactType,
    CustomPropertyType,
)
from incident_sync.models import SyncLog
from incident_sync.models.sync_log import SyncDirection, SyncStatus
from incident_sync.services.entities import (
    Case,
    CustomPropertyDefinition,
    DataMapping,
    Incident,
    IncidentResolution,
    Milestone,
    Release,
)
from incident_sync.services.field_translator import (
    NOT_FOUND,
    Found,
    NotNumeric,
    Resolution,
    find_mapping_by_external_key,
    find_mapping_by_internal_id,
    get_custom_value,
    parse_external_id,
    set_custom_value,
    special_field_for,
    to_external,
    to_internal,
)
from incident_sync.services.text_render import html_to_plain_text

logger = logging.getLogger(__name__)

# Record outcomes, also the keys of the stats dict
CREATED = "created"
UPDATED = "updated"
SKIPPED = "skipped"
ERRORS = "errors"


@dataclass
class SyncContext:
    """Mapping tables and accumulators for one project within one pass"""

    project_id: int
    remote_project_id: int
    product_name: str
    base_url: str
    user_mappings: List[DataMapping]
    field_mappings: Dict[ArtifactField, List[DataMapping]]
    custom_properties: List[CustomPropertyDefinition]
    custom_property_mappings: Dict[int, Optional[DataMapping]]
    custom_property_value_mappings: Dict[int, List[DataMapping]]
    incident_mappings: List[DataMapping]
    release_mappings: List[DataMapping]
    new_incident_mappings: List[DataMapping] = field(default_factory=list)
    new_release_mappings: List[DataMapping] = field(default_factory=list)
    # Never populated; kept so removals go through the same persistence step
    old_release_mappings: List[DataMapping] = field(default_factory=list)


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


class SyncService:
    """Runs one sync pass between the local incident tracker and the remote bug tracker.

    Phase 1 pushes incidents created locally since the watermark as new cases.
    Phase 2 pulls cases edited remotely since the watermark into local incidents.
    Each record is handled in isolation: a failure is logged and counted, and
    the pass moves on to the next record.
    """

    def __init__(
        self,
        local,
        remote,
        store,
        settings: Settings = default_settings,
        db: Optional[Session] = None,
        run_id: Optional[int] = None,
    ):
        self.local = local
        self.remote = remote
        self.store = store
        self.settings = settings
        self.db = db
        self.run_id = run_id
        self.now = datetime.now()
        self.stats = self._new_stats()

    @staticmethod
    def _new_stats() -> Dict[str, int]:
        return {CREATED: 0, UPDATED: 0, SKIPPED: 0, ERRORS: 0}

    def _trace(self, message: str):
        if self.settings.trace_logging:
            logger.debug(message)

    def execute(self, last_sync_date: Optional[datetime], server_date_time: datetime) -> SyncStatus:
        """Run a full pass over every mapped project.

        `last_sync_date` is None on the first run. `server_date_time` is the
        local system's current time and dates everything created by the pass.
        """
        self.now = server_date_time
        self.stats = self._new_stats()
        logger.info(f"Starting sync pass (last sync: {last_sync_date or 'never'})")

        try:
            if not self.local.authenticate(self.settings.local_login, self.settings.local_password):
                logger.error("Unable to authenticate with the local system, sync aborted")
                return SyncStatus.ERROR
            product_name = self.local.get_product_name()

            project_mappings = self.store.get_project_mappings()
            user_mappings = self.store.get_user_mappings()

            if not self.remote.verify_api():
                logger.error(f"The {REMOTE_PRODUCT_NAME} API version is not supported, sync aborted")
                return SyncStatus.ERROR

            self.remote.logon(self.settings.remote_login, self.settings.remote_password)
            try:
                base_url = self.local.get_base_url()
                for project_mapping in project_mappings:
                    remote_project = parse_external_id(project_mapping.external_key)
                    if not isinstance(remote_project, Found):
                        logger.error(
                            f"The project mapping for project PR{project_mapping.internal_id} "
                            f"has a non-numeric external key '{project_mapping.external_key}', sync aborted"
                        )
                        return SyncStatus.ERROR

                    project_id = project_mapping.internal_id
                    if not self.local.connect_to_project(project_id):
                        logger.error(f"Unable to connect to {product_name} project PR{project_id}, skipping")
                        continue

                    logger.info(
                        f"Syncing project PR{project_id} with {REMOTE_PRODUCT_NAME} project {remote_project.value}"
                    )
                    context = self._load_context(
                        project_id, remote_project.value, product_name, base_url, user_mappings
                    )
                    self.push_new_incidents(context, last_sync_date)
                    self.pull_changed_cases(context, last_sync_date)
            finally:
                self._logoff()

        except Exception as e:
            logger.error(f"Sync pass failed: {e}")
            return SyncStatus.ERROR

        logger.info(f"Sync pass completed: {self.stats}")
        if self.stats[ERRORS]:
            return SyncStatus.WARNING
        return SyncStatus.SUCCESS

    def _logoff(self):
        try:
            self.remote.logoff()
        except Exception as e:
            logger.warning(f"Unable to log off from {REMOTE_PRODUCT_NAME}: {e}")

    def _load_context(
        self,
        project_id: int,
        remote_project_id: int,
        product_name: str,
        base_url: str,
        user_mappings: List[DataMapping],
    ) -> SyncContext:
        """Load the project's mapping tables from the store"""
        field_mappings = {kind: self.store.get_field_mappings(kind) for kind in ArtifactField}

        custom_properties = self.local.get_custom_properties(ArtifactType.INCIDENT)
        custom_property_mappings = {}
        custom_property_value_mappings = {}
        for definition in custom_properties:
            cp_id = definition.custom_property_id
            custom_property_mappings[cp_id] = self.store.get_custom_property_mapping(ArtifactType.INCIDENT, cp_id)
            if definition.property_type == CustomPropertyType.LIST:
                custom_property_value_mappings[cp_id] = self.store.get_custom_property_value_mappings(
                    ArtifactType.INCIDENT, cp_id
                )

        return SyncContext(
            project_id=project_id,
            remote_project_id=remote_project_id,
            product_name=product_name,
            base_url=base_url,
            user_mappings=user_mappings,
            field_mappings=field_mappings,
            custom_properties=custom_properties,
            custom_property_mappings=custom_property_mappings,
            custom_property_value_mappings=custom_property_value_mappings,
            incident_mappings=self.store.get_artifact_mappings(ArtifactType.INCIDENT),
            release_mappings=self.store.get_artifact_mappings(ArtifactType.RELEASE),
        )

    def _persist_new_mappings(self, ctx: SyncContext):
        """Write the mappings created during a phase back to the store"""
        self.store.add_artifact_mappings(ArtifactType.INCIDENT, ctx.new_incident_mappings)
        self.store.add_artifact_mappings(ArtifactType.RELEASE, ctx.new_release_mappings)
        self.store.remove_artifact_mappings(ArtifactType.RELEASE, ctx.old_release_mappings)

        ctx.incident_mappings.extend(ctx.new_incident_mappings)
        ctx.release_mappings.extend(ctx.new_release_mappings)
        ctx.new_incident_mappings = []
        ctx.new_release_mappings = []
        ctx.old_release_mappings = []

    def _log_sync(
        self,
        ctx: SyncContext,
        status: SyncStatus,
        direction: SyncDirection,
        message: str = "",
        internal_id: Optional[int] = None,
        external_key: Optional[str] = None,
    ):
        """Log a record-level outcome"""
        if self.db is None:
            return
        log = SyncLog(
            run_id=self.run_id,
            project_id=ctx.project_id,
            status=status,
            direction=direction,
            message=message,
            internal_id=internal_id,
            external_key=external_key,
        )
        self.db.add(log)
        self.db.commit()

    # Lookups shared by both phases

    def _user_to_internal(self, ctx: SyncContext, remote_user_id: Optional[int]) -> Optional[int]:
        """Local user for a remote person; the user table is global and unfiltered."""
        if remote_user_id is None:
            return None
        result = to_internal(ctx.user_mappings, str(remote_user_id), primary_only=False)
        return result.value if isinstance(result, Found) else None

    def _custom_property_alias(self, ctx: SyncContext, definition: CustomPropertyDefinition) -> Optional[str]:
        mapping = ctx.custom_property_mappings.get(definition.custom_property_id)
        if mapping is not None and mapping.external_key:
            return mapping.external_key
        return definition.alias

    def _release_mapping_by_internal_id(self, ctx: SyncContext, release_id: int) -> Optional[DataMapping]:
        return find_mapping_by_internal_id(
            ctx.release_mappings, release_id, ctx.project_id
        ) or find_mapping_by_internal_id(ctx.new_release_mappings, release_id, ctx.project_id)

    def _release_mapping_by_external_key(self, ctx: SyncContext, milestone_id: int) -> Optional[DataMapping]:
        key = str(milestone_id)
        return find_mapping_by_external_key(
            ctx.release_mappings, key, ctx.project_id, primary_only=True
        ) or find_mapping_by_external_key(ctx.new_release_mappings, key, ctx.project_id, primary_only=True)

    # Phase 1: local -> remote

    def push_new_incidents(self, ctx: SyncContext, last_sync_date: Optional[datetime]) -> Dict[str, int]:
        """Create a remote case for every incident created locally since the last pass"""
        stats = self._new_stats()
        since = last_sync_date or FIRST_SYNC_DATE
        incidents = self.local.get_new_incidents(since)
        logger.info(f"Found {len(incidents)} new incident(s) in project PR{ctx.project_id} since {since}")

        for incident in incidents:
            if find_mapping_by_internal_id(ctx.incident_mappings, incident.incident_id, ctx.project_id) is not None:
                # Already pushed by an earlier pass
                stats[SKIPPED] += 1
                continue
            try:
                outcome = self._push_incident(ctx, incident)
            except Exception as e:
                logger.error(f"Failed to sync incident {INCIDENT_PREFIX}{incident.incident_id}: {e}")
                outcome = ERRORS
                self._log_sync(
                    ctx,
                    SyncStatus.FAILED,
                    SyncDirection.LOCAL_TO_REMOTE,
                    f"Failed to sync incident: {e}",
                    internal_id=incident.incident_id,
                )
            stats[outcome] += 1

        self._persist_new_mappings(ctx)
        for key in stats:
            self.stats[key] += stats[key]
        logger.info(f"Phase 1 completed for project PR{ctx.project_id}: {stats}")
        return stats

    def _push_incident(self, ctx: SyncContext, incident: Incident) -> str:
        case = self._build_case(ctx, incident)
        if case is None:
            self._log_sync(
                ctx,
                SyncStatus.FAILED,
                SyncDirection.LOCAL_TO_REMOTE,
                "Missing or invalid type/status mapping",
                internal_id=incident.incident_id,
            )
            return ERRORS

        created = self.remote.create_case(case)
        ctx.new_incident_mappings.append(
            DataMapping(
                internal_id=incident.incident_id,
                external_key=str(created.case_id),
                project_id=ctx.project_id,
                is_primary=True,
            )
        )
        logger.info(f"Created case {created.case_id} for incident {INCIDENT_PREFIX}{incident.incident_id}")
        self._log_sync(
            ctx,
            SyncStatus.SUCCESS,
            SyncDirection.LOCAL_TO_REMOTE,
            "Created case",
            internal_id=incident.incident_id,
            external_key=str(created.case_id),
        )
        return CREATED

    def _describe_incident(self, ctx: SyncContext, incident: Incident) -> str:
        url = f"{ctx.base_url}{INCIDENT_DETAILS_PATH}{incident.incident_id}"
        token = f"{INCIDENT_PREFIX}{incident.incident_id}"
        opener = incident.opener_name or ""
        if self.settings.supports_rich_text:
            return (
                f'Incident <a href="{url}">[{token}:{url}]</a> detected by {opener} '
                f"in {ctx.product_name}.<br/>\n{incident.description or ''}"
            )
        return (
            f"Incident [{token}|{url}] detected by {opener} in {ctx.product_name}.\n"
            f"{html_to_plain_text(incident.description or '')}"
        )

    @staticmethod
    def _resolve_external(mappings: List[DataMapping], internal_id: Optional[int], project_id: int) -> Resolution:
        if internal_id is None:
            return NOT_FOUND
        return to_external(mappings, internal_id, project_id)

    def _build_case(self, ctx: SyncContext, incident: Incident) -> Optional[Case]:
        """Translate an incident into a new case. Returns None when a mandatory field can't be mapped."""
        token = f"{INCIDENT_PREFIX}{incident.incident_id}"
        case = Case(
            project=ctx.remote_project_id,
            title=incident.name,
            description=self._describe_incident(ctx, incident),
            due=incident.start_date,
        )
        if incident.estimated_effort is not None:
            case.hours_estimate = incident.estimated_effort // 60

        # Type is mandatory
        result = self._resolve_external(
            ctx.field_mappings[ArtifactField.TYPE], incident.incident_type_id, ctx.project_id
        )
        if not isinstance(result, Found):
            logger.error(
                f"Unable to map the type {incident.incident_type_id} of incident {token} "
                f"to a {REMOTE_PRODUCT_NAME} category"
            )
            return None
        case.category = result.value
        self._trace(f"{token}: type {incident.incident_type_id} -> category {case.category}")

        # Status is mandatory; the "Closed" row closes the case instead
        result = self._resolve_external(
            ctx.field_mappings[ArtifactField.STATUS], incident.incident_status_id, ctx.project_id
        )
        if isinstance(result, NotNumeric) and result.raw == STATUS_KEY_CLOSED:
            case.status = CLOSED_CASE_STATUS
            case.person_assigned_to = CLOSED_USER_ID
        elif isinstance(result, Found):
            case.status = result.value
        else:
            logger.error(
                f"Unable to map the status {incident.incident_status_id} of incident {token} "
                f"to a {REMOTE_PRODUCT_NAME} status"
            )
            return None
        self._trace(f"{token}: status {incident.incident_status_id} -> {case.status}")

        if incident.priority_id is not None:
            result = self._resolve_external(
                ctx.field_mappings[ArtifactField.PRIORITY], incident.priority_id, ctx.project_id
            )
            if isinstance(result, Found):
                case.priority = result.value
            else:
                logger.warning(f"Unable to map the priority {incident.priority_id} of incident {token}, leaving unset")

        if case.person_assigned_to != CLOSED_USER_ID and incident.owner_id is not None:
            result = self._resolve_external(ctx.user_mappings, incident.owner_id, None)
            if isinstance(result, Found):
                case.person_assigned_to = result.value
            else:
                logger.warning(f"Unable to map the owner {incident.owner_id} of incident {token}, leaving unassigned")

        # Prefer the release the incident was resolved in
        if incident.resolved_release_id is not None:
            release_id = incident.resolved_release_id
            version_number = incident.resolved_release_version_number
        else:
            release_id = incident.detected_release_id
            version_number = incident.detected_release_version_number
        if release_id is not None:
            case.fix_for = self._milestone_for_release(ctx, release_id, version_number)

        self._apply_custom_properties_to_case(ctx, incident, case)
        return case

    def _milestone_for_release(
        self, ctx: SyncContext, release_id: int, version_number: Optional[str]
    ) -> Optional[int]:
        """Remote milestone for a local release, creating it on first use"""
        mapping = self._release_mapping_by_internal_id(ctx, release_id)
        if mapping is not None:
            parsed = parse_external_id(mapping.external_key)
            if isinstance(parsed, Found):
                return parsed.value
            logger.warning(
                f"The release mapping for RL{release_id} has a non-numeric key '{mapping.external_key}', "
                f"leaving the milestone unset"
            )
            return None

        milestone = self.remote.create_milestone(
            Milestone(
                project=ctx.remote_project_id,
                name=f"{version_number or ''}({release_id})",
                release_date=_add_months(self.now, 1),
                assignable=True,
            )
        )
        ctx.new_release_mappings.append(
            DataMapping(
                internal_id=release_id,
                external_key=str(milestone.milestone_id),
                project_id=ctx.project_id,
                is_primary=True,
            )
        )
        return milestone.milestone_id

    def _apply_custom_properties_to_case(self, ctx: SyncContext, incident: Incident, case: Case):
        for definition in ctx.custom_properties:
            alias = self._custom_property_alias(ctx, definition)
            special = special_field_for(alias, definition.property_type)
            if special is None:
                continue
            value = get_custom_value(incident.custom_properties, definition.name)
            if value is None:
                continue

            if definition.property_type == CustomPropertyType.TEXT:
                setattr(case, special.case_attribute, str(value))
                continue

            result = self._resolve_external(
                ctx.custom_property_value_mappings.get(definition.custom_property_id, []),
                value,
                ctx.project_id,
            )
            if isinstance(result, Found):
                setattr(case, special.case_attribute, result.value)
            else:
                logger.warning(
                    f"Unable to map the value {value} of custom property {definition.name} "
                    f"on incident {INCIDENT_PREFIX}{incident.incident_id}"
                )

    # Phase 2: remote -> local

    def pull_changed_cases(self, ctx: SyncContext, last_sync_date: Optional[datetime]) -> Dict[str, int]:
        """Create or update local incidents from cases edited remotely since the last pass"""
        stats = self._new_stats()
        ctx.incident_mappings = self.store.get_artifact_mappings(ArtifactType.INCIDENT)

        since = (last_sync_date or FIRST_SYNC_DATE) - timedelta(hours=self.settings.time_offset_hours)
        cases = self.remote.get_changed_cases(ctx.remote_project_id, since)
        logger.info(f"Found {len(cases)} changed case(s) in {REMOTE_PRODUCT_NAME} project {ctx.remote_project_id}")

        for case in cases:
            if case.project is not None and case.project != ctx.remote_project_id:
                self._trace(f"Case {case.case_id} belongs to project {case.project}, skipping")
                stats[SKIPPED] += 1
                continue
            try:
                outcome = self._pull_case(ctx, case)
            except Exception as e:
                logger.error(f"Failed to sync case {case.case_id}: {e}")
                outcome = ERRORS
                self._log_sync(
                    ctx,
                    SyncStatus.FAILED,
                    SyncDirection.REMOTE_TO_LOCAL,
                    f"Failed to sync case: {e}",
                    external_key=str(case.case_id),
                )
            stats[outcome] += 1

        self._persist_new_mappings(ctx)
        for key in stats:
            self.stats[key] += stats[key]
        logger.info(f"Phase 2 completed for project PR{ctx.project_id}: {stats}")
        return stats

    def _fail_case(self, ctx: SyncContext, case: Case, message: str, internal_id: Optional[int] = None) -> str:
        logger.error(f"Case {case.case_id}: {message}")
        self._log_sync(
            ctx,
            SyncStatus.FAILED,
            SyncDirection.REMOTE_TO_LOCAL,
            message,
            internal_id=internal_id,
            external_key=str(case.case_id),
        )
        return ERRORS

    def _pull_case(self, ctx: SyncContext, case: Case) -> str:
        result = to_internal(ctx.incident_mappings, str(case.case_id), ctx.project_id)
        resolutions: List[IncidentResolution] = []
        if isinstance(result, Found):
            try:
                incident = self.local.get_incident(result.value)
            except Exception as e:
                return self._fail_case(
                    ctx, case, f"unable to fetch mapped incident {INCIDENT_PREFIX}{result.value}: {e}", result.value
                )
            resolutions = self.local.get_resolutions(incident.incident_id)
            is_new = False
        elif self.settings.get_new_items_from_remote:
            incident = Incident(project_id=ctx.project_id)
            is_new = True
        else:
            self._trace(f"Case {case.case_id} is not mapped and new items are not pulled, skipping")
            return SKIPPED

        token = f"case {case.case_id}" if is_new else f"{INCIDENT_PREFIX}{incident.incident_id}"

        incident.name = case.title if (case.title or "").strip() else DEFAULT_INCIDENT_NAME
        if is_new:
            if (case.description or "").strip():
                incident.description = case.description
            else:
                incident.description = f"Empty Description in {REMOTE_PRODUCT_NAME}"

        if case.hours_estimate is not None:
            incident.estimated_effort = case.hours_estimate * 60
        incident.start_date = case.due
        incident.closed_date = case.closed

        if case.priority is None:
            incident.priority_id = None
        else:
            priority = to_internal(ctx.field_mappings[ArtifactField.PRIORITY], str(case.priority), ctx.project_id)
            if isinstance(priority, Found):
                incident.priority_id = priority.value
            else:
                logger.warning(f"Unable to map the priority {case.priority} of case {case.case_id}, leaving unchanged")

        status = self._status_for_case(ctx, case)
        if isinstance(status, Found):
            incident.incident_status_id = status.value
            self._trace(f"{token}: status {case.status} -> {status.value}")
        else:
            logger.error(f"Unable to map the status {case.status} of case {case.case_id}, leaving unchanged")

        incident_type = NOT_FOUND
        if case.category is not None:
            incident_type = to_internal(ctx.field_mappings[ArtifactField.TYPE], str(case.category), ctx.project_id)
        if isinstance(incident_type, Found):
            incident.incident_type_id = incident_type.value
        elif is_new:
            logger.info(f"No type mapping for the category {case.category} of case {case.case_id}, not importing")
            return SKIPPED
        else:
            logger.error(f"Unable to map the category {case.category} of case {case.case_id}, leaving type unchanged")

        if is_new:
            opener_id = self._user_to_internal(ctx, case.person_opened_by)
            if opener_id is None:
                return self._fail_case(ctx, case, f"unable to map the opener {case.person_opened_by}")
            incident.opener_id = opener_id

        if case.person_assigned_to is None or case.person_assigned_to == CLOSED_USER_ID:
            incident.owner_id = None
        else:
            owner_id = self._user_to_internal(ctx, case.person_assigned_to)
            if owner_id is not None:
                incident.owner_id = owner_id
            elif is_new:
                return self._fail_case(ctx, case, f"unable to map the assignee {case.person_assigned_to}")
            else:
                logger.warning(
                    f"Unable to map the assignee {case.person_assigned_to} of case {case.case_id}, "
                    f"leaving the owner unchanged"
                )

        pending = self._pending_comment(ctx, case, resolutions)

        if case.fix_for is not None:
            release_id = self._release_for_milestone(ctx, case.fix_for, incident.opener_id)
            if release_id is not None:
                incident.resolved_release_id = release_id
                if is_new:
                    incident.detected_release_id = release_id

        self._apply_custom_properties_to_incident(ctx, case, incident)

        if is_new:
            created = self.local.create_incident(incident)
            ctx.new_incident_mappings.append(
                DataMapping(
                    internal_id=created.incident_id,
                    external_key=str(case.case_id),
                    project_id=ctx.project_id,
                    is_primary=True,
                )
            )
            if pending is not None:
                pending.incident_id = created.incident_id
                self.local.add_resolutions([pending])
            logger.info(f"Created incident {INCIDENT_PREFIX}{created.incident_id} from case {case.case_id}")
            self._log_sync(
                ctx,
                SyncStatus.SUCCESS,
                SyncDirection.REMOTE_TO_LOCAL,
                "Created incident",
                internal_id=created.incident_id,
                external_key=str(case.case_id),
            )
            return CREATED

        self.local.update_incident(incident)
        if pending is not None:
            pending.incident_id = incident.incident_id
            self.local.add_resolutions([pending])
        logger.info(f"Updated incident {INCIDENT_PREFIX}{incident.incident_id} from case {case.case_id}")
        self._log_sync(
            ctx,
            SyncStatus.SUCCESS,
            SyncDirection.REMOTE_TO_LOCAL,
            "Updated incident",
            internal_id=incident.incident_id,
            external_key=str(case.case_id),
        )
        return UPDATED

    def _status_for_case(self, ctx: SyncContext, case: Case) -> Resolution:
        mappings = ctx.field_mappings[ArtifactField.STATUS]
        if case.person_assigned_to == CLOSED_USER_ID:
            closed = to_internal(mappings, STATUS_KEY_CLOSED, ctx.project_id)
            if isinstance(closed, Found):
                return closed
        if case.status is None:
            return NOT_FOUND
        return to_internal(mappings, str(case.status), ctx.project_id)

    def _pending_comment(
        self, ctx: SyncContext, case: Case, resolutions: List[IncidentResolution]
    ) -> Optional[IncidentResolution]:
        """The case's latest text as a new comment, unless an existing comment already has it"""
        text = case.description or ""
        if not text.strip():
            return None
        if any(r.resolution == text for r in resolutions):
            return None

        creator_id = None
        if case.person_assigned_to != CLOSED_USER_ID:
            creator_id = self._user_to_internal(ctx, case.person_assigned_to)
        if creator_id is None:
            creator_id = self._user_to_internal(ctx, case.person_opened_by)
        if creator_id is None:
            logger.warning(f"No mapped user to author the comment from case {case.case_id}, dropping it")
            return None

        return IncidentResolution(
            incident_id=None,
            creator_id=creator_id,
            creation_date=case.last_updated or self.now,
            resolution=text,
        )

    def _release_for_milestone(
        self, ctx: SyncContext, milestone_id: int, creator_id: Optional[int]
    ) -> Optional[int]:
        """Local release for a remote milestone, creating it on first use"""
        mapping = self._release_mapping_by_external_key(ctx, milestone_id)
        if mapping is not None:
            return mapping.internal_id

        milestone = self.remote.get_milestone(milestone_id)
        if milestone is None:
            logger.warning(f"Unable to retrieve {REMOTE_PRODUCT_NAME} milestone {milestone_id}")
            return None

        today = self.now.replace(hour=0, minute=0, second=0, microsecond=0)
        release = self.local.create_release(
            Release(
                name=milestone.name,
                version_number=f"{RELEASE_VERSION_PREFIX}{milestone_id}",
                active=True,
                start_date=today,
                end_date=today + timedelta(days=5),
                creator_id=creator_id,
                creation_date=self.now,
                resource_count=1,
                days_non_working=0,
            )
        )
        ctx.new_release_mappings.append(
            DataMapping(
                internal_id=release.release_id,
                external_key=str(milestone_id),
                project_id=ctx.project_id,
                is_primary=True,
            )
        )
        return release.release_id

    def _apply_custom_properties_to_incident(self, ctx: SyncContext, case: Case, incident: Incident):
        for definition in ctx.custom_properties:
            alias = self._custom_property_alias(ctx, definition)
            special = special_field_for(alias, definition.property_type)
            if special is None:
                continue
            value: Any = getattr(case, special.case_attribute)

            if definition.property_type == CustomPropertyType.TEXT:
                set_custom_value(incident.custom_properties, definition.name, value or None)
                continue

            if value is None:
                set_custom_value(incident.custom_properties, definition.name, None)
                continue
            result = to_internal(
                ctx.custom_property_value_mappings.get(definition.custom_property_id, []),
                str(value),
                ctx.project_id,
            )
            if isinstance(result, Found):
                set_custom_value(incident.custom_properties, definition.name, result.value)
            else:
                logger.warning(
                    f"Unable to map the {special.case_attribute} {value} of case {case.case_id} "
                    f"to a value of custom property {definition.name}"
                )
