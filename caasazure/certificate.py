import logging

from azure.keyvault.certificates import (
    CertificateContentType,
    CertificateOperation,
    CertificatePolicy,
    KeyVaultCertificate,
    WellKnownIssuerNames,
)

from caasazure.handles import CertificateHandle, ResourceGroupHandle, VaultHandle
from caasazure.session import AzureSession
from caasutil import sanitization as sanny
from caasutil.error_handling import (
    ResourceCreationError,
    ResourceLookupError,
    is_not_found,
    surface,
)

logger = logging.getLogger(__name__)

VALIDITY_IN_MONTHS = 12


class ClusterCertificate:
    """
    Self-signed cluster certificate issued by, and held in, the Key Vault.

    The VM scale set pulls the PFX through the certificate's secret URL, and the
    cluster trusts it by thumbprint; both end up in the parameter table.
    """

    @staticmethod
    def certificate_name(cluster_name: str) -> str:
        return sanny.Sanitization.keyvault_object(f"{cluster_name}-cert")

    @staticmethod
    def dns_name(cluster_name: str, location: str) -> str:
        """
        Public DNS name of the cluster endpoint, used as subject and SAN.
        """
        label = sanny.Sanitization.dns_label(cluster_name)
        region = location.replace(" ", "").lower()
        return f"{label}.{region}.cloudapp.azure.com"

    @staticmethod
    def policy(cluster_name: str, location: str) -> CertificatePolicy:
        dns = ClusterCertificate.dns_name(cluster_name, location)
        return CertificatePolicy(
            issuer_name=WellKnownIssuerNames.self,
            subject=f"CN={dns}",
            san_dns_names=[dns],
            content_type=CertificateContentType.pkcs12,
            validity_in_months=VALIDITY_IN_MONTHS,
        )

    @staticmethod
    def _handle(certificate: KeyVaultCertificate, created: bool = False) -> CertificateHandle:
        thumbprint = certificate.properties.x509_thumbprint
        return CertificateHandle(
            name=certificate.name,
            thumbprint=thumbprint.hex().upper() if thumbprint else "",
            secret_id=certificate.secret_id or "",
            created=created,
        )

    @staticmethod
    def get(session: AzureSession, vault: VaultHandle, name: str) -> CertificateHandle | None:
        """
        Return the latest version of certificate `name`, or None if absent.
        """
        try:
            with surface("ClusterCertificate", ResourceLookupError):
                certificate = session.certificates(vault.uri).get_certificate(name)
        except ResourceLookupError as e:
            if is_not_found(e):
                return None
            raise
        return ClusterCertificate._handle(certificate)

    @staticmethod
    def create(
            session: AzureSession,
            vault: VaultHandle,
            name: str,
            cluster_name: str,
            location: str
    ) -> CertificateHandle:
        """
        Have the vault issue a self-signed certificate and wait for it.

        Raises:
            ResourceCreationError: If issuance fails or completes without a thumbprint.
        """
        policy = ClusterCertificate.policy(cluster_name, location)
        logger.info(f"[ClusterCertificate] 🚀 Issuing self-signed certificate '{name}' ({policy.subject}) in {vault.name}")
        with surface("ClusterCertificate", ResourceCreationError):
            poller = session.certificates(vault.uri).begin_create_certificate(
                certificate_name=name,
                policy=policy,
            )
            certificate = poller.result()

        if isinstance(certificate, CertificateOperation):
            raise ResourceCreationError(
                f"[ClusterCertificate] ❌ Certificate '{name}' ended {certificate.status}: "
                f"{getattr(certificate.error, 'message', None) or certificate.status_details}"
            )

        handle = ClusterCertificate._handle(certificate, created=True)
        if not handle.thumbprint or not handle.secret_id:
            raise ResourceCreationError(
                f"[ClusterCertificate] ❌ Certificate '{name}' is missing its thumbprint or secret URL."
            )
        logger.info(f"[ClusterCertificate] ✅ Certificate issued: {handle.name} (thumbprint={handle.thumbprint})")
        return handle

    @staticmethod
    def ensure(
            session: AzureSession,
            vault: VaultHandle,
            group: ResourceGroupHandle,
            cluster_name: str
    ) -> CertificateHandle:
        """
        Return the cluster certificate from `vault`, issuing it if absent.
        """
        name = ClusterCertificate.certificate_name(cluster_name)
        certificate = ClusterCertificate.get(session, vault, name)
        if certificate:
            logger.info(f"[ClusterCertificate] ✅ Certificate exists: {certificate.name} (thumbprint={certificate.thumbprint})")
            return certificate
        return ClusterCertificate.create(session, vault, name, cluster_name, group.location)
