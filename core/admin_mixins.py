from __future__ import annotations


class IncludeSoftDeletedAdminMixin:
    """Admin mixin to include soft-deleted rows in changelist."""

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        model = getattr(self, "model", None)
        all_mgr = getattr(model, "all_objects", None)
        if all_mgr is not None:
            return all_mgr.all()
        return qs


def apply_gated_action(modeladmin, request, queryset, *, action, is_available, verb: str) -> None:
    """Run a per-row service action, skipping rows where it is not available.

    Every row is applied on its own so one failure does not undo the others;
    the outcome is reported through the admin messages framework.
    """
    from django.contrib import messages
    from django.core.exceptions import ValidationError

    done = 0
    skipped = 0
    failed: list[str] = []
    for obj in queryset:
        if not is_available(obj):
            skipped += 1
            continue
        try:
            action(obj, request)
            done += 1
        except ValidationError as e:
            failed.append(f"{obj}: {'; '.join(e.messages)}")

    if done:
        modeladmin.message_user(request, f"{verb}: {done} record(s).", level=messages.SUCCESS)
    if skipped:
        modeladmin.message_user(request, f"Skipped {skipped} record(s) where this action is not available.", level=messages.WARNING)
    for line in failed:
        modeladmin.message_user(request, line, level=messages.ERROR)
