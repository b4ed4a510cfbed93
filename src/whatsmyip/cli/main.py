import typer

from .commands import lookup, providers


app = typer.Typer(help="Find out the external IP address of this host.")

app.callback(invoke_without_command=True)(lookup.find_addresses)

app.command("providers")(providers.list_providers)
app.command("check")(providers.check_providers)

if __name__ == "__main__":
    app()
