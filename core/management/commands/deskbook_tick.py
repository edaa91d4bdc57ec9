from __future__ import annotations

import io
import time
import uuid

from django.conf import settings
from django.core.management import call_command
from django.core.management.base import BaseCommand, CommandError

from core.models import JobRun
from core.ops_alerts import alert_admins
from core.request_context import get_request_id, set_request_id
from core.scheduling import ScheduledJob, due_jobs, get_schedule


class Command(BaseCommand):
    help = "Run the scheduled jobs due this minute and persist a JobRun per job (run from cron every minute)."

    def add_arguments(self, parser):
        parser.add_argument("--job", action="append", default=[], help="Run this job by name regardless of time (repeatable).")
        parser.add_argument("--all", action="store_true", help="Run every job in DESKBOOK_SCHEDULE.")

    def handle(self, *args, **opts):
        names = [n.strip() for n in (opts.get("job") or []) if n.strip()]
        schedule = get_schedule()

        if opts.get("all"):
            jobs = schedule
        elif names:
            by_name = {j.name: j for j in schedule}
            unknown = [n for n in names if n not in by_name]
            if unknown:
                raise CommandError(f"Unknown job(s): {', '.join(unknown)}")
            jobs = [by_name[n] for n in names]
        else:
            jobs = due_jobs(schedule=schedule)

        if not jobs:
            self.stdout.write("No jobs due.")
            return

        failed = [job.name for job in jobs if not self._run(job)]

        if failed:
            message = "\n".join(
                [
                    f"Environment: {getattr(settings, 'ENVIRONMENT', '')}",
                    f"Failed jobs: {', '.join(failed)}",
                    f"Jobs run: {len(jobs)}",
                ]
            )
            alert_admins("Scheduled jobs failed", message, fail_silently=True)
            self.stdout.write(self.style.ERROR("FAILED: " + ", ".join(failed)))
        else:
            self.stdout.write(self.style.SUCCESS(f"OK: {len(jobs)} job(s) run."))

    def _run(self, job: ScheduledJob) -> bool:
        max_chars = int(getattr(settings, "DESKBOOK_JOB_OUTPUT_MAX_CHARS", 20000))
        run_id = uuid.uuid4().hex[:12]
        previous_rid = get_request_id()
        set_request_id(f"job-{run_id}")

        buf = io.StringIO()
        started = time.time()
        ok = False
        try:
            call_command(job.command, stdout=buf, stderr=buf)
            ok = True
        except SystemExit as e:
            code = getattr(e, "code", 1)
            ok = code == 0
            buf.write(f"\n(exit {code})")
        except Exception as e:
            buf.write(f"\n(exception) {e!r}")
        finally:
            set_request_id(previous_rid)
        duration_ms = int((time.time() - started) * 1000)

        stored = buf.getvalue() or "(no output)"
        if len(stored) > max_chars:
            stored = stored[:max_chars] + "\n\n[output truncated]"
        JobRun.objects.create(
            job=job.name,
            command=job.command,
            run_id=run_id,
            is_ok=ok,
            duration_ms=max(duration_ms, 0),
            output_text=stored,
        )

        self.stdout.write(f"{job.name}: {'ok' if ok else 'FAILED'} ({duration_ms} ms)")
        return ok
