"""Score-sheet extraction: encoder, vision-model service, client, batch loop and checksum."""
