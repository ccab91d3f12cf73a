# backlogctl

Building blocks for working with a Backlog space from Python: where the
active space and its credentials are kept, how to log in with OAuth 2.0,
and the user and wiki commands that print results as text or JSON.

## Modules

| Module | Purpose |
| --- | --- |
| `backlogctl.config` | Load and save `config.toml`, migrate the old `[auth]` layout, resolve the active space. |
| `backlogctl.secret` | Store API keys and OAuth tokens in private TOML files. |
| `backlogctl.oauth` | The OAuth 2.0 authorization-code flow and token refresh. |
| `backlogctl.logger` | Verbose diagnostics on stderr, switched on by `BL_VERBOSE`. |
| `backlogctl.users` | List and show users, a user's activities, recently viewed issues. |
| `backlogctl.wiki` | List and show wiki pages, page history and attachments. |
| `backlogctl.wiki_changes` | Create, update and delete wiki pages. |

## Configuration

`backlogctl.config.config_path()` gives the file's location: a `bl` folder
in the per-user configuration directory. The file records the current space
and every space used:

```toml
current_space = "mycompany"
spaces = ["mycompany", "another"]
```

`config.load()` reads it and, for a file in the older form (`[auth]` with
`space_key = "..."`), moves that key into `current_space` and `spaces` in
memory. `config.save()` never writes the `[auth]` section back. A missing
file yields an empty `Config`. Problems reading, parsing or writing raise
`config.ConfigError`.

Environment variables take precedence over stored values:

- `BL_SPACE` — the space key returned by `config.current_space_key()`
- `BL_API_KEY` — the API key returned by `secret.current_api_key()`
- `BL_VERBOSE` — any value other than empty, `0`, `false`, `no` or `off`
  makes `logger.verbose()` print

## Credentials

API keys live in `credentials.toml` next to the configuration file, under a
`[keys]` table; on POSIX systems the file is made readable by the owner only.

```python
from backlogctl import secret

backend = secret.set_api_key("mycompany", "placeholder")
print(backend)  # Credentials file

api_key, backend = secret.get_api_key("mycompany")
secret.delete_api_key("mycompany")
```

Each of these functions also takes a list of `secret.CredentialStore`
objects (for instance `secret.FileStore(path)`). `set_api_key` writes to the
first store that accepts the key, printing a warning for each one that
fails; `get_api_key` returns the key from the first store that has it;
`delete_api_key` removes it from every store and ignores failures. A key
that cannot be found or stored raises `secret.CredentialError`.

OAuth tokens are kept per space in `oauth_tokens.toml` with
`secret.set_oauth_tokens`, `secret.get_oauth_tokens` and
`secret.delete_oauth_tokens`.

## OAuth

```python
from backlogctl import oauth, secret

client_secret = "secret"
tokens = oauth.run_oauth_flow("mycompany", "my-client-id", client_secret, oauth.DEFAULT_OAUTH_PORT)
secret.set_oauth_tokens("mycompany", tokens)

tokens = oauth.refresh_access_token("mycompany", tokens)
```

`run_oauth_flow` binds `127.0.0.1` on the given port, prints the
authorization URL to stderr for you to open in a browser, and waits for the
redirect to `http://127.0.0.1:<port>/callback`, which must be the redirect
URI registered for your application. Requests for other paths are answered
and ignored; after ten connections without a callback, a denial from the
provider, or a mismatched `state`, it raises `oauth.OAuthError`. The
`repr` of `OAuthTokens` hides the secret and both tokens.

## Commands

Each command takes an arguments object and an API object, prints the result
(as indented JSON when `json=True`) and returns what the API gave back:

```python
from backlogctl import users, wiki, wiki_changes

users.list_with(users.UserListArgs(json=False), api)
users.activities_with(users.UserActivitiesArgs(1, count=50, order="asc"), api)
wiki.list_with(wiki.WikiListArgs("TEST", keyword="guide", json=True), api)
wiki_changes.update_with(wiki_changes.WikiUpdateArgs(1, name="Home"), api)
```

The API object is anything with the methods the command calls, returning
Backlog's JSON as dicts and lists: `get_users()`, `get_user(id)`,
`get_user_activities(user_id, params)`, `get_recently_viewed_issues(params)`,
`get_wikis(params)`, `get_wiki(wiki_id)`, `get_wiki_history(wiki_id)`,
`get_wiki_attachments(wiki_id)`, `create_wiki(params)`,
`update_wiki(wiki_id, params)` and `delete_wiki(wiki_id, params)`. `params`
is a list of `(name, value)` pairs.

Argument objects check their input and raise `ValueError`: counts must be
between 1 and 100, `min_id` may not exceed `max_id`, and a wiki update needs
a name or content. Text output is coloured only when stdout is a terminal
and `NO_COLOR` is unset.

## What this package does not do

- It has no command-line program; the commands are functions to call.
- It has no HTTP client for the Backlog REST API; you supply the API object.
- It does not use the system keyring; credentials and tokens are kept in files.
- It has no commands for issues, projects, teams, notifications or the space.