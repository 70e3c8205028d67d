"""Security admin CLI tool (secctl)."""

import typer

app = typer.Typer(name="secctl", help="Security Admin CLI")
db_app = typer.Typer(help="Database management commands")
roles_app = typer.Typer(help="Duty role and job role commands")
app.add_typer(db_app, name="db")
app.add_typer(roles_app, name="roles")

KINDS = {"duty": "duty-roles", "job": "job-roles"}


def _resource(kind: str) -> str:
    if kind not in KINDS:
        raise typer.BadParameter(f"kind must be one of: {', '.join(KINDS)}")
    return KINDS[kind]


def _fail(resp) -> None:
    try:
        detail = resp.json().get("detail")
    except ValueError:
        detail = resp.text
    typer.echo(f"❌ {resp.status_code}: {detail}", err=True)
    raise typer.Exit(code=1)


@db_app.command("create-tables")
def db_create_tables():
    """Create all tables that don't exist yet."""
    from secadmin.db.session import Database

    database = Database()
    database.create_all()
    database.dispose()
    typer.echo("✅ Tables created (or already exist)")


@db_app.command("seed")
def db_seed():
    """Seed the catalog, role hierarchy and demo users."""
    from secadmin.db.session import Database
    from secadmin.db.seeds.seed_catalog import seed_catalog
    from secadmin.db.seeds.seed_roles import seed_roles
    from secadmin.db.seeds.seed_users import seed_users

    database = Database()
    db = database.session()
    try:
        seed_catalog(db)
        seed_roles(db)
        seed_users(db)
    finally:
        db.close()
        database.dispose()
    typer.echo("✅ All seeds applied")


@db_app.command("reset")
def db_reset():
    """Drop and recreate all tables (DANGER)."""
    confirm = typer.confirm("⚠️  This will DROP every security table. Continue?")
    if not confirm:
        raise typer.Abort()
    from secadmin.db.session import Database

    database = Database()
    database.drop_all()
    database.create_all()
    database.dispose()
    typer.echo("✅ Tables reset")


@roles_app.command("list")
def list_roles(
    kind: str = typer.Argument(..., help="duty or job"),
    search: str = typer.Option(None, help="Match code or name"),
    page: int = typer.Option(1, help="Page number"),
    limit: int = typer.Option(50, help="Page size"),
):
    """List roles with their effective item counts."""
    import httpx
    from secadmin.core.config import settings

    params = {"page": page, "limit": limit}
    if search:
        params["search"] = search
    resp = httpx.get(f"{settings.API_URL}/{_resource(kind)}/", params=params)
    if resp.status_code != 200:
        _fail(resp)
    data = resp.json()
    for r in data.get("data", []):
        inherited = sum(1 for i in r["items"] if i["inherited"])
        typer.echo(
            f"  [{r['id']}] {r['code']} - {r['name']} "
            f"({len(r['items'])} items, {inherited} inherited, parents={[p['id'] for p in r['parents']]})"
        )
    typer.echo(f"Page {data['page']}/{data['total_pages']}, {data['total']} total")


@roles_app.command("effective")
def effective_items(
    kind: str = typer.Argument(..., help="duty or job"),
    role_id: int = typer.Argument(..., help="Role ID"),
):
    """Show a role's effective items, marking the inherited ones."""
    import httpx
    from secadmin.core.config import settings

    resp = httpx.get(f"{settings.API_URL}/{_resource(kind)}/{role_id}")
    if resp.status_code != 200:
        _fail(resp)
    role = resp.json()
    typer.echo(f"{role['code']} - {role['name']}")
    for item in role["items"]:
        marker = "inherited" if item["inherited"] else "explicit"
        typer.echo(f"  [{item['id']}] {item['code']} ({marker})")


@roles_app.command("repair-links")
def repair_links(kind: str = typer.Argument(..., help="duty or job")):
    """Rebuild cached child lists from parent lists, directly in the database."""
    from secadmin.db.session import Database
    from secadmin.services.role_service import duty_role_service, job_role_service

    service = {"duty-roles": duty_role_service, "job-roles": job_role_service}[_resource(kind)]
    database = Database()
    db = database.session()
    try:
        changed = service.rebuild_child_links(db)
    finally:
        db.close()
        database.dispose()
    typer.echo(f"✅ Repaired {len(changed)} role(s): {changed}")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("secadmin.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
