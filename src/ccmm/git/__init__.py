"""Git and GitHub collaborators: origin lookup, preset fetching, repository scans."""
