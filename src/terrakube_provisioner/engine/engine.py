"""Plan/apply engine."""

from __future__ import annotations

import contextlib
import hashlib
import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal

from terrakube_provisioner import __version__
from terrakube_provisioner.core.state import (
    ResourceInstance,
    State,
    compute_attributes_hash,
    compute_state_digest,
)
from terrakube_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DuplicateAddressError,
    ResourceImportError,
    StalePlanError,
    StateEndpointMismatchError,
    UnresolvedReferenceError,
    ValidationError,
)
from terrakube_provisioner.engine.graph import DependencyGraph
from terrakube_provisioner.engine.handlers import EngineContext, PlanContext
from terrakube_provisioner.engine.imports import parse_import_id
from terrakube_provisioner.engine.lock import StateLock
from terrakube_provisioner.engine.operations import (
    BarrierOperation,
    CreateOperation,
    DeleteOperation,
    ReplaceOperation,
    UpdateOperation,
)
from terrakube_provisioner.engine.references import (
    KNOWN_AFTER_APPLY,
    find_references,
    resolve_references,
)
from terrakube_provisioner.engine.types import (
    Action,
    ApplyResult,
    Plan,
    PlanMetadata,
    ResourceChange,
)
from terrakube_provisioner.resources.markers import force_new_fields

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResourceChange, Literal["start", "done"]], None]

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from terrakube_provisioner.core import TerrakubeProvider
    from terrakube_provisioner.engine.operations import Operation
    from terrakube_provisioner.engine.registry import ResourceTypeRegistry
    from terrakube_provisioner.resources.base import DataSource, Resource


def _values_differ(desired: Any, prior: Any) -> bool:
    """Check whether a planned value differs from the prior (stored) value.

    A value that is only known after apply always counts as a change.
    """
    if desired == KNOWN_AFTER_APPLY:
        return True
    return desired != prior


def _canonical_json(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)


def _sha256_hex(payload: str) -> str:
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _desired_dump(resource: Resource) -> dict[str, Any]:
    return resource.model_dump(
        exclude_none=True, exclude=set(type(resource).model_computed_fields)
    )


def _compute_config_digest(
    resources: Sequence[Resource], data_sources: Sequence[DataSource]
) -> str:
    items: list[dict[str, Any]] = []
    for r in resources:
        planned = _desired_dump(r)
        planned.pop("depends_on", None)
        items.append({"address": r.address, "resource_type": r.resource_type, "planned": planned})
    for d in data_sources:
        items.append({"address": d.address, "inputs": d.model_dump(exclude={"address"})})
    items.sort(key=lambda x: x["address"])
    return _sha256_hex(_canonical_json(items))


class TerrakubeEngine:
    """Terraform-like plan/apply engine for Terrakube resources."""

    def __init__(
        self,
        *,
        provider: TerrakubeProvider,
        endpoint: str,
        state_path: Path,
        registry: ResourceTypeRegistry,
    ) -> None:
        self._provider = provider
        self._endpoint = endpoint
        self._state_path = state_path
        self._registry = registry

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def state_path(self) -> Path:
        return self._state_path

    def _ctx(self) -> EngineContext:
        return EngineContext(provider=self._provider)

    def _load_state(self) -> State:
        state = State.load_or_create(self._state_path, endpoint=self._endpoint)
        if state.endpoint != self._endpoint:
            raise StateEndpointMismatchError(self._endpoint, state.endpoint)
        logger.debug("State loaded: serial=%d, %d resources", state.serial, len(state.resources))
        return state

    def _load_state_for_apply(self, plan: Plan) -> State:
        if self._state_path.exists():
            return self._load_state()
        # If no state exists, bootstrap from the plan metadata (saved-plan semantics).
        return State(
            endpoint=self._endpoint,
            lineage=plan.metadata.state_lineage,
            serial=plan.metadata.state_serial,
        )

    def _save(self, state: State) -> None:
        state.serial += 1
        state.save(self._state_path)

    # ── Refresh ─────────────────────────────────────────────────────

    def _refresh_state_in_place(self, state: State) -> bool:
        logger.debug("Refreshing state from Terrakube")
        changed = False
        ctx = self._ctx()

        for address, inst in list(state.resources.items()):
            handler = self._registry.get(inst.resource_type).handler
            attrs = handler.read(ctx, inst)
            if attrs is None:
                logger.info("%s no longer exists remotely", address)
                del state.resources[address]
                changed = True
                continue

            new_hash = compute_attributes_hash(attrs)
            if attrs != inst.attributes or new_hash != inst.attributes_hash:
                inst.attributes = attrs
                inst.attributes_hash = new_hash
                inst.updated_at = datetime.now(UTC)
                changed = True

        logger.debug("State refreshed, changed=%s", changed)
        return changed

    def refresh(self, *, persist: bool = False) -> tuple[State, State]:
        """Refresh state from Terrakube. Returns (pre_refresh, post_refresh)."""
        with StateLock(self._state_path):
            state = self._load_state()
            snapshot = state.model_copy(deep=True)
            changed = self._refresh_state_in_place(state)
            if changed and persist:
                self._save(state)
            return snapshot, state

    # ── Data sources ────────────────────────────────────────────────

    def _read_data_sources(
        self, data_by_addr: dict[str, DataSource], state: State
    ) -> dict[str, dict[str, Any]]:
        """Read every data source, in the order their references require.

        Inputs may reference other data sources or resources that already
        exist in state; anything else is a validation error.
        """
        refs = {
            addr: [r.address for r in find_references(d.model_dump(exclude={"address"}))]
            for addr, d in data_by_addr.items()
        }
        order = DependencyGraph(data_by_addr, refs).topological_order()

        ctx = self._ctx()
        values: dict[str, dict[str, Any]] = {
            addr: inst.attributes for addr, inst in state.resources.items()
        }
        results: dict[str, dict[str, Any]] = {}
        for addr in order:
            source = data_by_addr[addr]
            dump = source.model_dump(exclude={"address"})
            try:
                resolved = resolve_references(dump, values, strict=True)
            except UnresolvedReferenceError as e:
                raise ValidationError([f"Data source '{addr}': {e}"]) from e
            reg = self._registry.get_data(source.data_type)
            result = reg.handler.read(ctx, reg.model.model_validate(resolved))
            results[addr] = values[addr] = result
        return results

    # ── Plan ────────────────────────────────────────────────────────

    @staticmethod
    def _resolve_deps(desired_by_addr: dict[str, Resource]) -> dict[str, list[str]]:
        """Build dependency map: explicit depends_on + implicit from ``${...}`` references.

        Returns addr → full dep list without mutating the Resource objects.
        """
        dep_map: dict[str, list[str]] = {}
        for addr, r in desired_by_addr.items():
            deps = list(r.depends_on)
            for ref in find_references(_desired_dump(r)):
                if ref.is_data or ref.address == addr or ref.address in deps:
                    continue
                deps.append(ref.address)
            dep_map[addr] = deps
        return dep_map

    def _validate(
        self,
        desired_by_addr: dict[str, Resource],
        data_by_addr: dict[str, DataSource],
        state: State,
    ) -> None:
        ctx = self._ctx()
        errors: list[str] = []
        for r in desired_by_addr.values():
            reg = self._registry.get(r.resource_type)
            errors.extend(reg.handler.validate(ctx, r))
        plan_ctx = PlanContext(desired_by_addr, state, data_by_addr)
        for r in desired_by_addr.values():
            reg = self._registry.get(r.resource_type)
            errors.extend(reg.handler.validate_plan(ctx, r, plan_ctx))
        for r in desired_by_addr.values():
            for dep in r.depends_on:
                if not plan_ctx.address_exists(dep):
                    errors.append(f"Resource '{r.address}' depends on unknown address '{dep}'")
            for ref in find_references(_desired_dump(r)):
                if not plan_ctx.address_exists(ref.address):
                    errors.append(
                        f"Resource '{r.address}' references unknown address '{ref.address}'"
                    )
        for d in data_by_addr.values():
            for ref in find_references(d.model_dump(exclude={"address"})):
                if not plan_ctx.address_exists(ref.address):
                    errors.append(
                        f"Data source '{d.address}' references unknown address '{ref.address}'"
                    )
        if errors:
            raise ValidationError(errors)

    def _classify_change(
        self,
        addr: str,
        resource: Resource,
        state: State,
        deps: list[str],
        values: dict[str, dict[str, Any]],
    ) -> ResourceChange:
        """Classify a single resource as CREATE, UPDATE, REPLACE, or NOOP.

        Records what the resource will look like after apply in *values*, so
        later resources referencing it see planned rather than stored values.
        """
        desired_dump = _desired_dump(resource)
        desired_dump["depends_on"] = deps
        planned = {k: v for k, v in desired_dump.items() if k not in ("label", "depends_on")}
        resolved_planned = resolve_references(planned, values)

        prior_inst = state.resources.get(addr)
        if prior_inst is None:
            logger.debug("Classified %s as create", addr)
            values[addr] = dict(resolved_planned)
            return ResourceChange(
                address=addr,
                resource_type=resource.resource_type,
                action=Action.CREATE,
                desired=desired_dump,
                planned=resolved_planned,
            )

        prior = dict(prior_inst.attributes)
        diff = {
            k: {"from": prior.get(k), "to": v}
            for k, v in resolved_planned.items()
            if _values_differ(v, prior.get(k))
        }

        replace_fields: list[str] = []
        if diff:
            replace_fields = sorted(set(diff) & force_new_fields(resource))
            if not replace_fields and not resource.api.updatable:
                replace_fields = sorted(diff)

        if replace_fields:
            action = Action.REPLACE
            values[addr] = dict(resolved_planned)
        elif diff:
            action = Action.UPDATE
            values[addr] = {**prior, **resolved_planned}
        else:
            action = Action.NOOP
        logger.debug("Classified %s as %s", addr, action.value)
        return ResourceChange(
            address=addr,
            resource_type=resource.resource_type,
            action=action,
            desired=desired_dump,
            prior=prior,
            planned=resolved_planned,
            diff=diff or None,
            replace_fields=replace_fields or None,
        )

    def _plan_deletes(self, state: State, addrs: set[str]) -> list[ResourceChange]:
        """Plan delete changes for the given addresses in reverse dependency order."""
        order = self._delete_order(state, addrs)
        changes: list[ResourceChange] = []
        for addr in order:
            inst = state.resources[addr]
            self._registry.get(inst.resource_type)  # fail early if unknown
            changes.append(
                ResourceChange(
                    address=addr,
                    resource_type=inst.resource_type,
                    action=Action.DELETE,
                    prior=dict(inst.attributes),
                )
            )
        return changes

    def plan(
        self,
        resources: Sequence[Resource],
        *,
        data_sources: Sequence[DataSource] = (),
        destroy: bool = False,
        refresh: bool = True,
    ) -> Plan:
        logger.info(
            "Planning %d resources, %d data sources (destroy=%s, refresh=%s)",
            len(resources),
            len(data_sources),
            destroy,
            refresh,
        )
        # Only lock when refresh may write state.
        lock_cm = StateLock(self._state_path) if refresh else contextlib.nullcontext()
        with lock_cm:
            state = self._load_state()

            if refresh:
                changed = self._refresh_state_in_place(state)
                if changed:
                    self._save(state)

            desired_by_addr: dict[str, Resource] = {}
            for r in resources:
                if r.address in desired_by_addr:
                    raise DuplicateAddressError(r.address)
                self._registry.get(r.resource_type)
                desired_by_addr[r.address] = r

            data_by_addr: dict[str, DataSource] = {}
            for d in data_sources:
                if d.address in data_by_addr:
                    raise DuplicateAddressError(d.address)
                self._registry.get_data(d.data_type)
                data_by_addr[d.address] = d

            state_addrs = set(state.resources)
            data: dict[str, dict[str, Any]] = {}

            if destroy:
                changes = self._plan_deletes(state, state_addrs)
            else:
                self._validate(desired_by_addr, data_by_addr, state)
                data = self._read_data_sources(data_by_addr, state)

                dep_map = self._resolve_deps(desired_by_addr)
                desired_addrs = set(desired_by_addr)
                topo_deps = {a: [d for d in ds if d in desired_addrs] for a, ds in dep_map.items()}
                priorities = {addr: r.plan_priority for addr, r in desired_by_addr.items()}
                order = DependencyGraph(
                    desired_addrs, topo_deps, priorities=priorities
                ).topological_order()

                values: dict[str, dict[str, Any]] = {
                    addr: dict(inst.attributes) for addr, inst in state.resources.items()
                }
                values.update(data)
                changes = [
                    self._classify_change(
                        addr, desired_by_addr[addr], state, dep_map[addr], values
                    )
                    for addr in order
                ]
                changes.extend(self._plan_deletes(state, state_addrs - desired_addrs))

            metadata = PlanMetadata(
                endpoint=self._endpoint,
                created_at=datetime.now(UTC),
                destroy=destroy,
                refresh=refresh,
                state_lineage=state.lineage,
                state_serial=state.serial,
                state_digest=compute_state_digest(state),
                config_digest=_compute_config_digest(
                    [] if destroy else resources, [] if destroy else data_sources
                ),
                engine_version=__version__,
            )

            return Plan(metadata=metadata, changes=changes, data=data)

    # ── Apply ───────────────────────────────────────────────────────

    def _delete_order(self, state: State, delete_set: set[str]) -> list[str]:
        dep_map: dict[str, list[str]] = {}
        priorities: dict[str, int] = {}
        for addr in delete_set:
            inst = state.resources[addr]
            dep_map[addr] = [d for d in inst.dependencies if d in delete_set]
            priorities[addr] = self._registry.get(inst.resource_type).model.plan_priority
        return DependencyGraph(
            delete_set, dep_map, priorities=priorities
        ).reverse_topological_order()

    def _operation_order(self, plan: Plan, state: State) -> list[Operation]:
        """Compute a deterministic operation order using an operation graph."""
        ops = self._build_apply_operations(plan, state)
        dep_map = {k: op.deps for k, op in ops.items()}
        priorities: dict[str, int] = {}
        for k, op in ops.items():
            if op.change is not None:
                reg = self._registry.get(op.change.resource_type)
                priorities[k] = reg.model.plan_priority
        order = DependencyGraph(ops.keys(), dep_map, priorities=priorities).topological_order()
        return [ops[k] for k in order]

    def _build_apply_operations(self, plan: Plan, state: State) -> dict[str, Operation]:
        ops: dict[str, Operation] = {}
        create_update_set: set[str] = set()
        delete_set: set[str] = set()

        for c in plan.changes:
            op: Operation
            match c.action:
                case Action.NOOP:
                    continue
                case Action.CREATE:
                    op = CreateOperation(key=c.address, change=c)
                    create_update_set.add(c.address)
                case Action.UPDATE:
                    op = UpdateOperation(key=c.address, change=c)
                    create_update_set.add(c.address)
                case Action.REPLACE:
                    op = ReplaceOperation(key=c.address, change=c)
                    create_update_set.add(c.address)
                case Action.DELETE:
                    op = DeleteOperation(key=c.address, change=c)
                    delete_set.add(c.address)
                case _:
                    raise ValueError(f"Unknown action: {c.action}")

            if op.key in ops:
                raise ValueError(f"Duplicate operation key in plan: {op.key}")
            ops[op.key] = op

        # create/update/replace: dependencies must run before dependents
        for addr in create_update_set:
            op = ops[addr]
            assert op.change is not None
            if op.change.desired is None:
                raise ValueError(f"Missing desired config for {op.change.action.value}: {addr}")
            deps = op.change.desired.get("depends_on", [])
            if deps is None:
                deps = []
            if not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
                raise ValueError(f"Invalid depends_on for {addr}: expected list[str]")
            op.deps.extend([d for d in deps if d in create_update_set])

        # deletes: dependents must be deleted before dependencies (invert edges)
        for addr in delete_set:
            inst = state.resources.get(addr)
            if inst is None:
                raise ValueError(f"Missing state for delete operation: {addr}")
            for dep in inst.dependencies:
                if dep in delete_set:
                    ops[dep].deps.append(addr)

        # Creates and updates run before deletes.
        if create_update_set and delete_set:
            barrier_key = "__engine__.apply_barrier"
            if barrier_key in ops:
                raise ValueError(f"Barrier operation key conflicts with plan: {barrier_key}")

            ops[barrier_key] = BarrierOperation(key=barrier_key, deps=sorted(create_update_set))
            for addr in delete_set:
                ops[addr].deps.append(barrier_key)

        return ops

    def apply(self, plan: Plan, *, progress: ProgressCallback | None = None) -> ApplyResult:
        with StateLock(self._state_path):
            state = self._load_state_for_apply(plan)
            if state.endpoint != self._endpoint:
                raise StateEndpointMismatchError(self._endpoint, state.endpoint)
            if plan.metadata.endpoint != self._endpoint:
                raise StalePlanError(
                    f"Plan was made for {plan.metadata.endpoint}, not {self._endpoint}"
                )

            # Stale plan detection
            if state.lineage != plan.metadata.state_lineage:
                raise StalePlanError("State lineage changed; re-run plan")
            if state.serial != plan.metadata.state_serial:
                raise StalePlanError("State serial changed; re-run plan")
            if compute_state_digest(state) != plan.metadata.state_digest:
                raise StalePlanError("State digest changed; re-run plan")

            ctx = self._ctx()
            applied: list[ResourceChange] = []
            ordered_ops = self._operation_order(plan, state)
            logger.info("Applying %d operations", len(ordered_ops))

            def checkpoint() -> None:
                self._save(state)

            try:
                for op in ordered_ops:
                    logger.debug("Applying %s: %s", op.key, type(op).__name__)
                    if progress and op.change is not None:
                        progress(op.change, "start")
                    did_change = op.run(
                        ctx=ctx,
                        state=state,
                        registry=self._registry,
                        data=plan.data,
                        checkpoint=checkpoint,
                    )
                    if not did_change:
                        continue

                    assert op.change is not None
                    if progress:
                        progress(op.change, "done")

                    self._save(state)
                    applied.append(op.change)
            except KeyboardInterrupt as e:  # pragma: no cover
                raise ApplyCanceled("Apply canceled") from e
            except Exception as e:
                raise ApplyError(applied=applied, address=op.key, message=str(e)) from e

            return ApplyResult(applied=applied)

    # ── Import ──────────────────────────────────────────────────────

    def import_resource(self, address: str, raw_id: str) -> ResourceInstance:
        """Bring an existing remote object under management at *address*.

        The identifier is parsed before anything else, so a malformed one
        leaves state untouched.
        """
        resource_type, _, label = address.partition(".")
        if not label:
            raise ResourceImportError(f"Invalid resource address: {address!r}")
        reg = self._registry.get(resource_type)
        keys = parse_import_id(raw_id, reg.model.api.import_keys)

        with StateLock(self._state_path):
            state = self._load_state()
            if address in state.resources:
                raise ResourceImportError(
                    f"{address} is already managed (id={state.resources[address].resource_id})"
                )

            seed = ResourceInstance(
                address=address, resource_type=resource_type, label=label, attributes=keys
            )
            attrs = reg.handler.read(self._ctx(), seed)
            if attrs is None:
                raise ResourceImportError(f"Cannot import {address}: {raw_id} does not exist")

            now = datetime.now(UTC)
            inst = ResourceInstance(
                address=address,
                resource_type=resource_type,
                label=label,
                attributes=attrs,
                attributes_hash=compute_attributes_hash(attrs),
                created_at=now,
                updated_at=now,
            )
            state.resources[address] = inst
            self._save(state)
            logger.info("Imported %s (id=%s)", address, inst.resource_id)
            return inst
