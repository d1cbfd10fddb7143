"""SmallBiz Workspace - client, job, invoice and public site backend."""
